from __future__ import annotations

import glm

from scene_graph import Camera, to_vec3

TRAVEL_OFFSET = (0.0, 2.0, 10.0)
TRAVEL_DURATION = 2.0  # segundos


def ease_out_quad(t: float) -> float:
    return 1.0 - (1.0 - t) * (1.0 - t)


class _Flight:
    def __init__(self, start: glm.vec3, end: glm.vec3, target: glm.vec3, duration: float):
        self.start = start
        self.end = end
        self.target = target
        self.duration = duration
        self.elapsed = 0.0


class CameraTravelController:
    """Tweens the camera toward `target + offset`, re-aiming at the target every step.

    Only one flight exists per controller: a new `travel_to` replaces the one in
    progress, starting from wherever the camera is at that moment.
    """

    def __init__(self, camera: Camera, offset=TRAVEL_OFFSET, duration: float = TRAVEL_DURATION,
                 ease=ease_out_quad):
        self.camera = camera
        self.offset = to_vec3(offset)
        self.duration = duration
        self.ease = ease
        self._flight: _Flight | None = None

    @property
    def is_active(self) -> bool:
        return self._flight is not None

    @property
    def destination(self) -> glm.vec3 | None:
        return None if self._flight is None else glm.vec3(self._flight.end)

    def travel_to(self, target_position) -> glm.vec3:
        target = to_vec3(target_position)
        end = target + self.offset
        self._flight = _Flight(glm.vec3(self.camera.position), end, target, self.duration)
        return glm.vec3(end)

    def cancel(self) -> None:
        self._flight = None

    def update(self, delta_time: float) -> bool:
        """Advance one tick; returns True while a flight is still running."""
        flight = self._flight
        if flight is None:
            return False

        flight.elapsed += max(0.0, delta_time)
        t = 1.0 if flight.duration <= 0.0 else min(1.0, flight.elapsed / flight.duration)

        self.camera.position = glm.mix(flight.start, flight.end, self.ease(t))
        self.camera.look_at(flight.target)

        if t >= 1.0:
            self._flight = None
            return False
        return True
