"""Pygame UI shell for Typing Mirror.

Type the passage; every mistake redacts one more feature of your own face
in the live camera panel. Deterministic typing/timing/scoring lives in the
core modules; this file only turns SessionSnapshot into pixels and pygame
events into controller commands.
"""

from __future__ import annotations

import logging
import os
import random
from collections.abc import Callable
from typing import Protocol

import cv2
import numpy as np
import pygame

from .clock import RealClock
from .config import AppConfig, configure_logging
from .controller import (
    CharView,
    FaceStatus,
    NextPassage,
    RestartPassage,
    Retract,
    SessionController,
    SessionSnapshot,
    TypeText,
)
from .corpus import load_corpus
from .face_tracking import CameraError, FaceTracker
from .outcome import Classification
from .session import CharState

logger = logging.getLogger(__name__)


class Screen(Protocol):
    def handle_event(self, event: pygame.event.Event) -> None: ...
    def render(self, surface: pygame.Surface) -> None: ...


WINDOW_SIZE = (1100, 620)
FLASH_MS = 300

BG = (246, 244, 240)
TEXT_MAIN = (28, 28, 32)
TEXT_MUTED = (120, 120, 128)
PENDING = (150, 150, 158)
CORRECT = (28, 28, 32)
INCORRECT = (220, 30, 30)
CURSOR = (220, 30, 30)
REDACTION = (255, 0, 0)
PANEL_BORDER = (200, 198, 192)


class App:
    def __init__(self, surface: pygame.Surface) -> None:
        self._surface = surface
        self._screens: list[Screen] = []
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    def push(self, screen: Screen) -> None:
        self._screens.append(screen)

    def quit(self) -> None:
        self._running = False

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.QUIT:
            self.quit()
            return
        if not self._screens:
            return
        self._screens[-1].handle_event(event)

    def render(self) -> None:
        if not self._screens:
            return
        self._screens[-1].render(self._surface)


class TypingScreen:
    def __init__(
        self,
        app: App,
        *,
        controller: SessionController,
        config: AppConfig,
        camera_error: str | None = None,
    ) -> None:
        self._app = app
        self._controller = controller
        self._config = config
        self._camera_error = camera_error

        self._passage_font = pygame.font.Font(None, 34)
        self._stat_font = pygame.font.Font(None, 40)
        self._label_font = pygame.font.Font(None, 20)
        self._small_font = pygame.font.Font(None, 24)
        self._big_font = pygame.font.Font(None, 64)

        self._seen_mistakes = 0
        self._flash_until_ms = 0
        self._dismissed_outcome: object | None = None

    def handle_event(self, event: pygame.event.Event) -> None:
        bus = self._controller.bus
        snap_outcome = self._controller.outcome
        overlay_open = snap_outcome is not None and snap_outcome is not self._dismissed_outcome

        if event.type == pygame.TEXTINPUT:
            if not overlay_open:
                bus.put(TypeText(event.text))
            return

        if event.type != pygame.KEYDOWN:
            return

        if event.key == pygame.K_ESCAPE:
            if overlay_open:
                self._dismissed_outcome = snap_outcome
            else:
                self._app.quit()
        elif event.key in (pygame.K_RETURN, pygame.K_KP_ENTER):
            if overlay_open:
                self._dismissed_outcome = snap_outcome
        elif event.key == pygame.K_BACKSPACE:
            bus.put(Retract())
        elif event.key == pygame.K_TAB:
            bus.put(NextPassage())
        elif event.key == pygame.K_F5:
            bus.put(RestartPassage())

    def render(self, surface: pygame.Surface) -> None:
        snap = self._controller.snapshot()
        now_ms = pygame.time.get_ticks()
        if snap.mistakes > self._seen_mistakes:
            self._flash_until_ms = now_ms + FLASH_MS
        self._seen_mistakes = snap.mistakes

        w, h = surface.get_size()
        surface.fill(BG)

        margin = max(16, w // 40)
        cam_w = max(240, int(w * 0.42))
        text_rect = pygame.Rect(margin, margin, w - cam_w - margin * 3, h - margin * 2 - 90)
        cam_rect = pygame.Rect(text_rect.right + margin, margin, cam_w, int(cam_w * 0.75))
        stats_rect = pygame.Rect(margin, text_rect.bottom + 10, w - margin * 2, 80)

        self._render_passage(surface, text_rect, snap, flashing=now_ms < self._flash_until_ms)
        self._render_camera(surface, cam_rect, snap)
        self._render_stats(surface, stats_rect, snap)

        hint = "Backspace: undo  |  Tab: next passage  |  F5: restart  |  Esc: quit"
        hint_surf = self._label_font.render(hint, True, TEXT_MUTED)
        surface.blit(hint_surf, (cam_rect.x, cam_rect.bottom + 12))

        if snap.outcome is not None and snap.outcome is not self._dismissed_outcome:
            self._render_outcome(surface, snap)

    def _render_passage(
        self,
        surface: pygame.Surface,
        rect: pygame.Rect,
        snap: SessionSnapshot,
        *,
        flashing: bool,
    ) -> None:
        border = INCORRECT if flashing else PANEL_BORDER
        pygame.draw.rect(surface, (255, 255, 255), rect)
        pygame.draw.rect(surface, border, rect, 3 if flashing else 1)

        inner = rect.inflate(-32, -32)
        font = self._passage_font
        line_h = font.get_linesize() + 6
        positions = _layout_chars(font, snap.chars, inner.w)
        for view, (x, row) in zip(snap.chars, positions):
            y = inner.y + row * line_h
            if y + line_h > inner.bottom:
                break
            color = {
                CharState.PENDING: PENDING,
                CharState.CORRECT: CORRECT,
                CharState.INCORRECT: INCORRECT,
            }[view.state]
            glyph = font.render(view.char, True, color)
            gx = inner.x + x
            if view.state is CharState.INCORRECT and view.char == " ":
                pygame.draw.rect(surface, (255, 210, 210), (gx, y, glyph.get_width(), font.get_height()))
            surface.blit(glyph, (gx, y))
            if view.is_cursor:
                pygame.draw.line(
                    surface,
                    CURSOR,
                    (gx, y + font.get_height() + 1),
                    (gx + max(8, glyph.get_width()), y + font.get_height() + 1),
                    2,
                )

        if snap.author_line:
            author = self._small_font.render(snap.author_line, True, TEXT_MUTED)
            surface.blit(author, author.get_rect(bottomright=(inner.right, rect.bottom - 10)))

    def _render_camera(self, surface: pygame.Surface, rect: pygame.Rect, snap: SessionSnapshot) -> None:
        pygame.draw.rect(surface, (20, 20, 24), rect)

        image = self._controller.latest_image
        if image is None:
            msg = self._camera_error or "Waiting for camera..."
            if snap.face_status is FaceStatus.NO_CAMERA and self._camera_error is None:
                msg = "Camera off"
            text = self._small_font.render(msg, True, (230, 230, 235))
            surface.blit(text, text.get_rect(center=rect.center))
        else:
            view = _fit_image(image, rect.w, rect.h)
            if self._config.mirror_view:
                view = cv2.flip(view, 1)
            vh, vw = view.shape[:2]
            origin = (rect.x + (rect.w - vw) // 2, rect.y + (rect.h - vh) // 2)
            surface.blit(pygame.surfarray.make_surface(view.swapaxes(0, 1)), origin)

            clip = surface.get_clip()
            surface.set_clip(pygame.Rect(origin, (vw, vh)))
            for r in self._controller.redactions(width=vw, height=vh, mirror=self._config.mirror_view):
                x, y, rw, rh = r.as_tuple()
                pygame.draw.rect(surface, REDACTION, (origin[0] + x, origin[1] + y, rw, rh))
            surface.set_clip(clip)

        pygame.draw.rect(surface, PANEL_BORDER, rect, 1)

        status = {
            FaceStatus.NO_CAMERA: ("Camera Off", TEXT_MUTED),
            FaceStatus.DETECTED: ("Face: Detected", INCORRECT),
            FaceStatus.NOT_FOUND: ("Face: Not Found", (255, 120, 120)),
        }[snap.face_status]
        label = self._label_font.render(status[0], True, status[1])
        surface.blit(label, (rect.x, rect.bottom + 32))

        lost = f"Features lost: {len(snap.hidden_features)}/7"
        lost_surf = self._label_font.render(lost, True, TEXT_MUTED)
        surface.blit(lost_surf, lost_surf.get_rect(topright=(rect.right, rect.bottom + 32)))

    def _render_stats(self, surface: pygame.Surface, rect: pygame.Rect, snap: SessionSnapshot) -> None:
        stats = (
            ("TIME", snap.elapsed_text),
            ("WPM", str(snap.wpm)),
            ("ACCURACY", f"{snap.accuracy_percent}%"),
            ("PROGRESS", f"{snap.progress_percent}%"),
            ("MISTAKES", str(snap.mistakes)),
        )
        col_w = rect.w // len(stats)
        for i, (name, value) in enumerate(stats):
            x = rect.x + i * col_w
            value_color = INCORRECT if name == "MISTAKES" and snap.mistakes else TEXT_MAIN
            v = self._stat_font.render(value, True, value_color)
            n = self._label_font.render(name, True, TEXT_MUTED)
            surface.blit(v, (x, rect.y))
            surface.blit(n, (x, rect.y + v.get_height() + 4))

    def _render_outcome(self, surface: pygame.Surface, snap: SessionSnapshot) -> None:
        outcome = snap.outcome
        assert outcome is not None
        w, h = surface.get_size()

        shade = pygame.Surface((w, h), pygame.SRCALPHA)
        shade.fill((0, 0, 0, 170))
        surface.blit(shade, (0, 0))

        box = pygame.Rect(0, 0, min(620, w - 40), 300)
        box.center = (w // 2, h // 2)
        pygame.draw.rect(surface, (255, 255, 255), box)

        if outcome.classification is Classification.FAILURE:
            title, title_color = "You lost yourself.", INCORRECT
        else:
            title, title_color = "You kept yourself.", TEXT_MAIN
        t = self._big_font.render(title, True, title_color)
        surface.blit(t, t.get_rect(midtop=(box.centerx, box.y + 24)))

        line = (
            f"{outcome.wpm} WPM   |   {outcome.accuracy_percent}% accuracy   |   "
            f"{outcome.total_mistakes} mistakes"
        )
        s = self._small_font.render(line, True, TEXT_MAIN)
        surface.blit(s, s.get_rect(midtop=(box.centerx, box.y + 110)))

        if outcome.message:
            m = self._small_font.render(outcome.message, True, TEXT_MUTED)
            surface.blit(m, m.get_rect(midtop=(box.centerx, box.y + 160)))

        hint = self._label_font.render("Enter: close  |  Tab: next passage  |  F5: try again", True, TEXT_MUTED)
        surface.blit(hint, hint.get_rect(midbottom=(box.centerx, box.bottom - 18)))


def _layout_chars(font: pygame.font.Font, chars: tuple[CharView, ...], max_width: int) -> list[tuple[int, int]]:
    """Word-wrapped (x, row) for every character."""

    positions: list[tuple[int, int]] = []
    x = 0
    row = 0
    i = 0
    n = len(chars)
    while i < n:
        # A word plus its trailing spaces moves to the next row as one unit.
        j = i
        while j < n and chars[j].char != " ":
            j += 1
        while j < n and chars[j].char == " ":
            j += 1
        word_w = sum(font.size(c.char)[0] for c in chars[i:j] if c.char != " ")
        if x > 0 and x + word_w > max_width:
            x = 0
            row += 1
        for c in chars[i:j]:
            positions.append((x, row))
            x += font.size(c.char)[0]
        i = j
    return positions


def _fit_image(image: np.ndarray, max_w: int, max_h: int) -> np.ndarray:
    h, w = image.shape[:2]
    scale = min(max_w / w, max_h / h)
    size = (max(1, int(w * scale)), max(1, int(h * scale)))
    return cv2.resize(image, size)


def _new_seed() -> int:
    return random.SystemRandom().randint(1, 2**31 - 1)


def _camera_disabled(config: AppConfig) -> bool:
    if config.disable_camera:
        return True
    # Keep automated/headless runs off the real camera.
    return os.environ.get("SDL_VIDEODRIVER", "").strip().lower() == "dummy"


def run(*, max_frames: int | None = None, event_injector: Callable[[int], None] | None = None) -> int:
    config = AppConfig.from_env()
    configure_logging(config.log_level)

    pygame.init()
    pygame.display.set_caption("Typing Mirror")
    surface = pygame.display.set_mode(WINDOW_SIZE, pygame.RESIZABLE)
    pygame.key.start_text_input()

    clock = pygame.time.Clock()

    app = App(surface=surface)

    corpus = load_corpus(config.corpus_path)
    controller = SessionController(corpus, clock=RealClock(), config=config, seed=_new_seed())

    tracker: FaceTracker | None = None
    camera_error: str | None = None
    if not _camera_disabled(config):
        tracker = FaceTracker(controller.bus, config=config)
        try:
            tracker.start()
        except CameraError as exc:
            logger.warning("Camera unavailable: %s", exc)
            camera_error = "Camera unavailable"
            tracker = None

    app.push(TypingScreen(app, controller=controller, config=config, camera_error=camera_error))

    frame = 0
    try:
        while app.running:
            if event_injector is not None:
                event_injector(frame)

            for event in pygame.event.get():
                app.handle_event(event)

            controller.pump()
            app.render()

            pygame.display.flip()

            frame += 1
            if max_frames is not None and frame >= max_frames:
                break

            clock.tick(config.target_fps)
    finally:
        if tracker is not None:
            tracker.stop()
        pygame.quit()

    return 0
