"""
Pygame bar viewer.

Only consumes engine events and sends control inputs; the sort runs on the
engine's own threads whether or not a frame gets drawn.

    SPACE   pause / resume
    P       enter step mode
    S       execute one step
    + / -   faster / slower
    R       restart on a fresh collection
    ESC     stop and quit
"""
import logging
import threading

import pygame

from .controller import COMPLETED, PAUSED, RUNNING, STEPPING
from .engine import SortingEngine
from .events import ARRAY_UPDATE, METRICS_UPDATE, OPERATION_UPDATE, SORTING_COMPLETE, ERROR, dispatch_event
from .settings import (ACTIVE_COLOR, BACKGROUND_COLOR, BAR_SPACING, FPS, SORTED_COLOR,
                       WINDOW_HEIGHT, WINDOW_WIDTH)

logger = logging.getLogger(__name__)

TEXT_COLOR = (140, 140, 160)
SPEED_STEP = 10


# ============================================================
# ======================= COLOR / DRAW =======================
# ============================================================

def value_to_color(value, max_value):
    r = value / max_value if max_value else 0
    r = max(0.0, min(1.0, r))
    if r < 0.25: return (0, int(255 * r * 4), 255)
    if r < 0.5:  return (0, 255, int(255 * (1 - (r - 0.25) * 4)))
    if r < 0.75: return (int(255 * (r - 0.5) * 4), 255, 0)
    return (255, int(255 * (1 - (r - 0.75) * 4)), 0)


def draw_bars(screen, font, array, active_indices, lines=(), done=False):
    screen.fill(BACKGROUND_COLOR)
    n = len(array)
    if n:
        top = max(max(array), 1)
        bw  = WINDOW_WIDTH / n
        for i, v in enumerate(array):
            h = (v / top) * (WINDOW_HEIGHT - 80)
            if done:
                c = SORTED_COLOR
            elif i in active_indices:
                c = ACTIVE_COLOR
            else:
                c = value_to_color(v, top)
            pygame.draw.rect(screen, c, (i * bw, WINDOW_HEIGHT - h, max(1, bw - BAR_SPACING), h))
    for row, text in enumerate(lines):
        screen.blit(font.render(text, True, TEXT_COLOR), (12, 10 + row * 20))
    pygame.display.flip()


class ViewState:
    """What the last events said; written by engine threads, read by the frame loop."""

    def __init__(self, values):
        self._lock     = threading.Lock()
        self.array     = list(values)
        self.active    = set()
        self.metrics   = (0, 0, 0)
        self.operation = ""
        self.done      = False
        self.error     = None
        self._handlers = {
            ARRAY_UPDATE:     self._on_array,
            METRICS_UPDATE:   self._on_metrics,
            OPERATION_UPDATE: self._on_operation,
            SORTING_COMPLETE: self._on_complete,
            ERROR:            self._on_error,
        }

    def __call__(self, event):
        with self._lock:
            dispatch_event(event, self._handlers)

    def _on_array(self, e):
        self.array  = list(e.collection)
        self.active = set(e.indices)
        self.done   = e.sorted

    def _on_metrics(self, e):
        self.metrics = (e.comparisons, e.swaps, e.accesses)

    def _on_operation(self, e):
        self.operation = e.description

    def _on_complete(self, e):
        self.done = True

    def _on_error(self, e):
        self.error = e.message

    def frame(self):
        with self._lock:
            return list(self.array), set(self.active), self.metrics, self.operation, self.done, self.error


def _restart(engine, algorithm, speed, step_mode):
    engine.initialize()
    return engine.start(algorithm, speed=speed, step_mode=step_mode)


def run_viewer(settings, algorithm, values, speed=50, step_mode=False) -> int:
    engine = SortingEngine(settings)
    state  = ViewState(values)
    engine.subscribe(state)
    engine.load(values)

    pygame.init()
    screen = pygame.display.set_mode((WINDOW_WIDTH, WINDOW_HEIGHT))
    pygame.display.set_caption("stepsort")
    font  = pygame.font.SysFont("consolas", 16)
    clock = pygame.time.Clock()

    if not engine.start(algorithm, speed=speed, step_mode=step_mode):
        logger.error("cannot start %s: %s", algorithm, engine.error)
        pygame.quit()
        return 1

    try:
        while True:
            clock.tick(FPS)
            for ev in pygame.event.get():
                if ev.type == pygame.QUIT:
                    return 0
                if ev.type != pygame.KEYDOWN:
                    continue
                if ev.key == pygame.K_ESCAPE:
                    return 0
                if ev.key == pygame.K_SPACE:
                    if engine.status == RUNNING:
                        engine.pause(wait=False)
                    elif engine.status in (PAUSED, STEPPING):
                        engine.resume()
                elif ev.key == pygame.K_p:
                    engine.enable_step_mode(wait=False)
                elif ev.key == pygame.K_s:
                    engine.execute_step(wait=False)
                elif ev.key in (pygame.K_PLUS, pygame.K_EQUALS, pygame.K_KP_PLUS):
                    speed = min(100, (speed or 50) + SPEED_STEP)
                    engine.set_speed(speed)
                elif ev.key in (pygame.K_MINUS, pygame.K_KP_MINUS):
                    speed = max(1, (speed or 50) - SPEED_STEP)
                    engine.set_speed(speed)
                elif ev.key == pygame.K_r and engine.status == COMPLETED:
                    _restart(engine, algorithm, speed, step_mode)

            array, active, (c, s, a), operation, done, error = state.frame()
            lines = [
                f"{algorithm}  [{engine.status}]  speed {speed if speed is not None else 'max'}",
                f"comparisons {c}   swaps {s}   accesses {a}",
                error or operation,
            ]
            draw_bars(screen, font, array, active, lines, done)
    finally:
        engine.close()
        pygame.quit()
