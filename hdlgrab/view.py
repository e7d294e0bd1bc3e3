"""Interactive view state of the point cloud window: rotation, zoom and input handling."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

ROTATION_STEP = 5.0
ZOOM_FACTOR = 1.1
DRAG_GAIN = 8
FULL_TURN_UNITS = 360 * 16

LEFT_BUTTON = 0
WHEEL_UP = 3
WHEEL_DOWN = 4


class SpecialKey(IntEnum):
    """Special keys understood by the viewer, with their GLUT key codes."""

    F1 = 1
    LEFT = 100
    UP = 101
    RIGHT = 102
    DOWN = 103
    PAGE_UP = 104
    PAGE_DOWN = 105


def normalize_angle(angle: int) -> int:
    """Bring an angle in sixteenths of a degree into the range 0..5760."""
    while angle < 0:
        angle += FULL_TURN_UNITS
    while angle > FULL_TURN_UNITS:
        angle -= FULL_TURN_UNITS
    return angle


def _wrap_degrees(value: float) -> float:
    value = value - 360.0 if value > 360.0 else value
    return value + 360.0 if value < 0.0 else value


@dataclass
class ViewState:
    """Rotation about the x and y axes, zoom scale and the last pointer position."""

    x_rot: float = 0.0
    y_rot: float = 0.0
    scale: float = 1.0
    last_x: int = 0
    last_y: int = 0
    quit_requested: bool = False

    def special_key(self, key: int) -> None:
        """Apply a special key: arrows rotate, page keys zoom, F1 asks to quit."""
        try:
            key = SpecialKey(key)
        except ValueError:
            key = None
        if key is SpecialKey.F1:
            self.quit_requested = True
        elif key is SpecialKey.UP:
            self.x_rot -= ROTATION_STEP
        elif key is SpecialKey.DOWN:
            self.x_rot += ROTATION_STEP
        elif key is SpecialKey.LEFT:
            self.y_rot -= ROTATION_STEP
        elif key is SpecialKey.RIGHT:
            self.y_rot += ROTATION_STEP
        elif key is SpecialKey.PAGE_UP:
            self.scale *= ZOOM_FACTOR
        elif key is SpecialKey.PAGE_DOWN:
            self.scale /= ZOOM_FACTOR
        self.x_rot = _wrap_degrees(self.x_rot)
        self.y_rot = _wrap_degrees(self.y_rot)

    def mouse_button(self, button: int, x: int, y: int) -> None:
        """Handle a mouse button: the left button anchors a drag, the wheel zooms."""
        if button == LEFT_BUTTON:
            self.last_x = x
            self.last_y = y
        elif button == WHEEL_UP:
            self.scale *= ZOOM_FACTOR
        elif button == WHEEL_DOWN:
            self.scale /= ZOOM_FACTOR

    def mouse_move(self, x: int, y: int) -> None:
        """Rotate the view by the drag distance from the anchored pointer position."""
        dx = x - self.last_x
        dy = y - self.last_y
        angle = normalize_angle(int(self.x_rot + DRAG_GAIN * dy))
        if angle != self.x_rot:
            self.x_rot = angle
        angle = normalize_angle(int(self.y_rot + DRAG_GAIN * dx))
        if angle != self.y_rot:
            self.y_rot = angle