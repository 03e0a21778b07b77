#!/usr/bin/env python3
"""
Flap -- side-scrolling pipe dodger for the terminal, using Python curses.
Keep the bird in the air and thread it through the gaps between the pipes.
The pipes speed up the longer you survive.
Space to flap, R to restart after a crash. Ctrl-C quits.
"""

import curses
import logging
import os
import random
import time

logger = logging.getLogger("flap")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

WIDTH = 64             # playfield columns
FLOOR_Y = 40           # floor row (1-indexed, like every other coordinate)
MIN_WIDTH = WIDTH + 1
MIN_HEIGHT = FLOOR_Y + 2

FRAME_DELAY = 0.001    # yield briefly, the loop is dt-driven

GRAVITY = 50
JUMP_VELOCITY = 20
PLAYER_X = 10

PIPE_GAP = 8
PIPE_SPACING = 30
PIPE_START_SPEED = 15
PIPE_ACCELERATION = 0.5
PIPE_MAX_SPEED = 35
PIPE_WIDTH = 5
PIPE_COUNT = 8
PIPE_SPREAD = 8

# Gap rows a recycled pipe may land on (y is the lower pipe's cap row)
PIPE_MIN_Y = PIPE_GAP + 1
PIPE_MAX_Y = FLOOR_Y - 1

JUMP_KEY = ord(' ')
RESTART_KEYS = (ord('r'), ord('R'))

LOG_ENV = "FLAP_LOG"

# Colors (-1 is the terminal's default color)
C_BLACK = curses.COLOR_BLACK
C_RED = curses.COLOR_RED
C_GREEN = curses.COLOR_GREEN
C_YELLOW = curses.COLOR_YELLOW
C_BLUE = curses.COLOR_BLUE
C_CYAN = curses.COLOR_CYAN
C_DEFAULT = -1


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------

class Clock:
    """Monotonic frame timer."""

    def __init__(self, source=time.monotonic):
        self._source = source
        self.last = self._source()

    def now(self):
        return self._source()

    def tick(self):
        """Return seconds elapsed since the previous tick."""
        now = self.now()
        dt = now - self.last
        self.last = now
        return dt


# ---------------------------------------------------------------------------
# Safe draw helper
# ---------------------------------------------------------------------------

def safe_addstr(stdscr, y, x, text, attr=0):
    """Write text to screen (0-indexed), dropping whatever falls off the window."""
    max_y, max_x = stdscr.getmaxyx()
    if not (0 <= y < max_y and 0 <= x < max_x):
        return
    try:
        stdscr.addstr(y, x, text[:max_x - x], attr)
    except curses.error:
        # Writing the bottom-right cell moves the cursor off-window
        pass


# ---------------------------------------------------------------------------
# Renderer
# ---------------------------------------------------------------------------

class Renderer:
    """Draws text and clipped rectangles on a curses window.

    Coordinates are 1-indexed (column x, row y) with y growing downward.
    The current color pair is carried by the renderer and applies to every
    draw call until the next set_color().
    """

    def __init__(self, win, width=WIDTH, use_color=True):
        self.win = win
        self.width = width
        self.use_color = use_color
        self.color = (C_DEFAULT, C_DEFAULT)
        self._attr = 0
        self._pairs = {}

    def _pair_attr(self, fg, bg):
        """Look up (or allocate) the curses color pair for fg/bg."""
        pair = self._pairs.get((fg, bg))
        if pair is None:
            pair = len(self._pairs) + 1
            curses.init_pair(pair, fg, bg)
            self._pairs[(fg, bg)] = pair
        return curses.color_pair(pair)

    def _put(self, x, y, text):
        safe_addstr(self.win, y - 1, x - 1, text, self._attr)

    def set_color(self, fg, bg):
        self.color = (fg, bg)
        self._attr = self._pair_attr(fg, bg) if self.use_color else 0

    def clear(self):
        self.win.clear()

    def draw_text(self, x, y, text):
        self._put(int(x), int(y), text)

    def fill_rect(self, x, y, w, h, ch):
        """Fill a w x h block with ch, clipped to columns [1, width].

        Rows above the screen (y < 0) are skipped; anything left with no
        width after clipping draws nothing.
        """
        x, y, w, h = int(x), int(y), int(w), int(h)
        if x > self.width:
            return
        if x + w - 1 > self.width:
            w = self.width - x + 1
        if x < 1:
            w += x - 1
            x = 1
        if w <= 0:
            return
        line = ch * w
        for row in range(y, y + h):
            if row < 0:
                continue
            self._put(x, row, line)

    def move_cursor(self, x, y):
        try:
            self.win.move(int(y) - 1, int(x) - 1)
        except curses.error:
            pass

    def flush(self):
        self.win.refresh()


# ---------------------------------------------------------------------------
# Entity creation
# ---------------------------------------------------------------------------

def create_player():
    """Create the bird, parked mid-screen."""
    return {
        "x": PLAYER_X,
        "y": FLOOR_Y * 0.5,
        "last_y": FLOOR_Y * 0.5,
        "vy": 0.0,
        "dead": False,
    }


def create_pipes():
    """Create the pipe pool: one pipe at the right edge, the rest parked offscreen.

    Parked pipes get the lowest legal gap so every slot is always in bounds;
    they are recycled on the first frame anyway.
    """
    pipes = []
    for i in range(PIPE_COUNT):
        x = float(WIDTH) if i == 0 else float(-PIPE_WIDTH - 1)
        pipes.append({
            "x": x,
            "last_x": x,
            "y": (FLOOR_Y + PIPE_GAP) // 2 if i == 0 else PIPE_MIN_Y,
            "scored": False,
        })
    return pipes


def init_state():
    """Build a fresh game state. Restarting always goes through here."""
    return {
        "player": create_player(),
        "pipes": create_pipes(),
        "score": 0,
        "pipe_speed": float(PIPE_START_SPEED),
    }


# ---------------------------------------------------------------------------
# Update functions
# ---------------------------------------------------------------------------

def update_player(player, dt, should_jump):
    """Integrate the bird's vertical motion and clamp it to the floor."""
    player["last_y"] = player["y"]
    if not player["dead"] and should_jump:
        player["vy"] = -JUMP_VELOCITY
    else:
        player["vy"] += GRAVITY * dt
    player["y"] += player["vy"] * dt

    if player["y"] >= FLOOR_Y:
        if not player["dead"]:
            logger.debug("bird hit the floor")
        player["dead"] = True
        player["y"] = FLOOR_Y
        player["vy"] = 0.0


def rightmost_pipe(pipes):
    """Return (x, y) of the pipe furthest right, or (0, 0) if none is onscreen."""
    max_x = 0.0
    max_y = 0
    for pipe in pipes:
        if pipe["x"] > max_x:
            max_x = pipe["x"]
            max_y = pipe["y"]
    return max_x, max_y


def recycle_pipe(pipe, pipes, rng=random):
    """Reuse a pipe slot for the next pipe after the rightmost one."""
    max_x, max_y = rightmost_pipe(pipes)
    y = max_y + rng.randrange(-PIPE_SPREAD, PIPE_SPREAD)
    if y >= FLOOR_Y:
        y = PIPE_MAX_Y
    if y <= PIPE_GAP:
        y = PIPE_MIN_Y
    pipe["x"] = max_x + PIPE_WIDTH + PIPE_SPACING
    pipe["y"] = y
    # No stale footprint to erase at the old offscreen position
    pipe["last_x"] = pipe["x"]
    pipe["scored"] = False


def update_pipes(pipes, pipe_speed, dt, rng=random):
    """Scroll every pipe left, recycling those that have left the screen."""
    for pipe in pipes:
        pipe["last_x"] = pipe["x"]
        pipe["x"] -= pipe_speed * dt
        if pipe["x"] < -PIPE_WIDTH:
            recycle_pipe(pipe, pipes, rng)


def update_pipe_speed(pipe_speed, dt):
    """Accelerate the pipes, capped at PIPE_MAX_SPEED."""
    return min(pipe_speed + dt * PIPE_ACCELERATION, PIPE_MAX_SPEED)


# ---------------------------------------------------------------------------
# Collision detection
# ---------------------------------------------------------------------------

def collide_player_with_pipes(player, pipes, score):
    """Check the bird against the pipe it is inside, if any.

    Hitting the pipe body kills the bird; passing through the gap scores
    that pipe once. Returns the updated score.
    """
    for pipe in pipes:
        if pipe["x"] <= player["x"] < pipe["x"] + PIPE_WIDTH:
            if player["y"] >= pipe["y"] or player["y"] <= pipe["y"] - PIPE_GAP + 1:
                if not player["dead"]:
                    logger.debug("bird hit a pipe at x=%.1f", pipe["x"])
                player["dead"] = True
            elif not pipe["scored"]:
                pipe["scored"] = True
                score += 1
                logger.debug("score %d", score)
            return score
    return score


# ---------------------------------------------------------------------------
# Input
# ---------------------------------------------------------------------------

def read_input(win, dead):
    """Drain every pending key and reduce them to (should_jump, should_restart)."""
    should_jump = False
    should_restart = False
    while True:
        key = win.getch()
        if key == -1:
            break
        if key == JUMP_KEY:
            should_jump = True
        if dead and key in RESTART_KEYS:
            should_restart = True
    return should_jump, should_restart


# ---------------------------------------------------------------------------
# Simulation step
# ---------------------------------------------------------------------------

def step(state, dt, should_jump, rng=random):
    """Advance the simulation by dt seconds."""
    update_pipes(state["pipes"], state["pipe_speed"], dt, rng)
    update_player(state["player"], dt, should_jump)
    state["score"] = collide_player_with_pipes(
        state["player"], state["pipes"], state["score"]
    )
    state["pipe_speed"] = update_pipe_speed(state["pipe_speed"], dt)


# ---------------------------------------------------------------------------
# Draw functions
# ---------------------------------------------------------------------------

def draw_floor(renderer):
    renderer.set_color(C_GREEN, C_DEFAULT)
    renderer.fill_rect(1, FLOOR_Y, WIDTH, 1, '^')


def draw_pipe(renderer, pipe):
    """Erase the pipe's previous footprint and draw it at its new column."""
    x = pipe["x"]
    y = pipe["y"]
    lower_h = FLOOR_Y - y
    upper_h = y - PIPE_GAP - 1

    renderer.set_color(C_DEFAULT, C_DEFAULT)
    renderer.fill_rect(pipe["last_x"], y, PIPE_WIDTH, lower_h, ' ')
    renderer.fill_rect(pipe["last_x"], 1, PIPE_WIDTH, y - PIPE_GAP, ' ')

    renderer.set_color(C_BLUE, C_DEFAULT)
    renderer.fill_rect(x, y, 1, lower_h, '|')
    renderer.fill_rect(x + 1, y, PIPE_WIDTH - 2, lower_h, '#')
    renderer.fill_rect(x + PIPE_WIDTH - 1, y, 1, lower_h, '|')

    renderer.fill_rect(x, 1, 1, upper_h, '|')
    renderer.fill_rect(x + 1, 1, PIPE_WIDTH - 2, upper_h, '#')
    renderer.fill_rect(x + PIPE_WIDTH - 1, 1, 1, upper_h, '|')

    renderer.set_color(C_CYAN, C_DEFAULT)
    renderer.fill_rect(x, y, PIPE_WIDTH, 1, '=')
    renderer.fill_rect(x, y - PIPE_GAP, PIPE_WIDTH, 1, '=')


def draw_pipes(renderer, pipes):
    for pipe in pipes:
        draw_pipe(renderer, pipe)


def draw_player(renderer, player):
    """Blank the bird's previous row and draw it at the current one."""
    if player["dead"]:
        renderer.set_color(C_RED, C_DEFAULT)
    else:
        renderer.set_color(C_YELLOW, C_DEFAULT)
    renderer.draw_text(player["x"], player["last_y"], ' ')
    renderer.draw_text(player["x"], player["y"], '@')


def draw_hud(renderer, score, pipe_speed):
    """Draw the score bar under the floor."""
    renderer.set_color(C_YELLOW, C_DEFAULT)
    renderer.fill_rect(1, FLOOR_Y + 1, WIDTH, 1, '=')
    renderer.set_color(C_DEFAULT, C_DEFAULT)
    renderer.draw_text(3, FLOOR_Y + 1, " score: %3d | speed: %3.0f " % (score, pipe_speed))


def draw_death_banner(renderer):
    renderer.set_color(C_BLACK, C_RED)
    renderer.draw_text(15, 15, "press 'r' to restart.")


def draw_frame(renderer, state):
    """Draw one frame over whatever the previous frame left on screen."""
    draw_floor(renderer)
    draw_pipes(renderer, state["pipes"])
    draw_player(renderer, state["player"])
    draw_hud(renderer, state["score"], state["pipe_speed"])
    if state["player"]["dead"]:
        draw_death_banner(renderer)
    renderer.move_cursor(1, FLOOR_Y + 1)
    renderer.flush()


def draw_too_small(stdscr, max_y, max_x):
    """Tell the player the terminal can't fit the playfield."""
    safe_addstr(stdscr, 0, 0, "Terminal too small!")
    safe_addstr(stdscr, 1, 0, f"Need {MIN_HEIGHT}x{MIN_WIDTH}, got {max_y}x{max_x}")
    safe_addstr(stdscr, 2, 0, "Press 'q' to quit.")


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

def setup_logging():
    """Log to the file named by $FLAP_LOG; stay silent otherwise.

    The terminal belongs to curses, so nothing is ever written to stderr.
    """
    path = os.environ.get(LOG_ENV)
    if not path:
        logger.addHandler(logging.NullHandler())
        return
    handler = logging.FileHandler(path, mode='w', encoding='utf-8')
    handler.setFormatter(logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    ))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    logger.info("logging to %s", path)


# ---------------------------------------------------------------------------
# Main game
# ---------------------------------------------------------------------------

def main(stdscr):
    """Main game loop -- called by curses.wrapper()."""
    # Curses setup
    curses.curs_set(0)
    stdscr.nodelay(True)
    stdscr.timeout(0)
    curses.start_color()
    curses.use_default_colors()

    max_y, max_x = stdscr.getmaxyx()

    # Terminal size check
    if max_y < MIN_HEIGHT or max_x < MIN_WIDTH:
        logger.warning("terminal too small: %dx%d", max_y, max_x)
        draw_too_small(stdscr, max_y, max_x)
        stdscr.nodelay(False)
        while stdscr.getch() not in (ord('q'), ord('Q')):
            pass
        return

    renderer = Renderer(stdscr, use_color=curses.has_colors())
    clock = Clock()
    rng = random.Random(time.time())
    state = init_state()
    renderer.clear()

    while True:
        dt = clock.tick()

        should_jump, should_restart = read_input(stdscr, state["player"]["dead"])

        if should_restart:
            logger.info("restart after scoring %d", state["score"])
            rng.seed(time.time())
            state = init_state()
            renderer.set_color(C_DEFAULT, C_DEFAULT)
            renderer.clear()
            renderer.flush()
            continue

        was_dead = state["player"]["dead"]
        step(state, dt, should_jump, rng)
        if state["player"]["dead"] and not was_dead:
            logger.info("crashed with score %d at speed %.1f",
                        state["score"], state["pipe_speed"])

        draw_frame(renderer, state)

        time.sleep(FRAME_DELAY)


def run():
    """Console entry point: run the game until interrupted."""
    setup_logging()
    try:
        curses.wrapper(main)
    except KeyboardInterrupt:
        logger.info("interrupted")


if __name__ == "__main__":
    run()
