"""Test package for Typing Mirror.

Core tests drive the typing engine, clock, projector and outcome logic with
a fake clock. UI smoke tests run headlessly using pygame's dummy video
driver with the camera disabled. To run these tests, execute ``pytest`` from
the project root.
"""
