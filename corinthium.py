#!/usr/bin/env python3
"""
Corinthium -- Terminal column-dodging game using Python curses.
Steer the falling word "corinthium" through the gaps between ornate
columns that scroll in from the right. Every tick survived scores a point.
Space (or a mouse click) to jump, Q to quit.
"""

import curses
import logging
import math
import os
import random
import time

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

TICK_INTERVAL = 0.060         # seconds per physics tick
RESTART_COOLDOWN = 1.0        # seconds after a crash before activate resets

GRAVITY = 0.3
JUMP_IMPULSE = -2.5
TENSION = 0.25

COLUMN_WIDTH = 14
TOP_COLUMN_OVERDRAW = 1       # rows a top column overlaps the header
BOTTOM_COLUMN_OVERDRAW = 2    # rows a bottom column overlaps the footer
MIN_COLUMN_MIDDLE_HEIGHT = 1
SIDE_PADDING = 10

GATE_DISTANCE_RANGE = (25, 50)
GATE_GAP_RANGE = (10, 20)
SEED_OFFSET = 100             # first gate is placed relative to width - 100

LABEL = "corinthium"
PLAYER_X = 32                 # column of the head; segment i sits at PLAYER_X - i

BLANK = " "
BAR = "|"

MIN_WIDTH = 60

HIGH_SCORE_DIR = os.path.expanduser("~/.shelly-ops")
HIGH_SCORE_FILE = os.path.join(HIGH_SCORE_DIR, "corinthium-highscore.txt")
LOG_FILE = os.path.join(HIGH_SCORE_DIR, "corinthium.log")

# Mouse buttons that count as an activate press
POINTER_PRESS_MASK = (
    curses.BUTTON1_PRESSED | curses.BUTTON1_CLICKED |
    curses.BUTTON2_PRESSED | curses.BUTTON2_CLICKED |
    curses.BUTTON3_PRESSED | curses.BUTTON3_CLICKED
)


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

def setup_logging(debug=False):
    """Send log records to a file; curses owns the terminal."""
    os.makedirs(HIGH_SCORE_DIR, exist_ok=True)
    logging.basicConfig(
        filename=LOG_FILE,
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


# ---------------------------------------------------------------------------
# High score I/O
# ---------------------------------------------------------------------------

def load_high_score():
    """Load high score from file, return 0 if not found."""
    try:
        with open(HIGH_SCORE_FILE, "r") as f:
            return int(f.read().strip())
    except (OSError, ValueError):
        return 0


def save_high_score(score):
    """Save high score to file."""
    try:
        os.makedirs(HIGH_SCORE_DIR, exist_ok=True)
        with open(HIGH_SCORE_FILE, "w") as f:
            f.write(str(score))
    except OSError as e:
        logger.warning("Could not save high score to %s: %s", HIGH_SCORE_FILE, e)


def update_high_score(score):
    """Store score if it beats the saved best. Returns the best score."""
    best = load_high_score()
    if score > best:
        save_high_score(score)
        logger.info("New high score: %d (was %d)", score, best)
        return score
    return best


# ---------------------------------------------------------------------------
# Canvas compositing
# ---------------------------------------------------------------------------

class Centered:
    """Coordinate that blit() resolves to the middle of the canvas axis."""

    def __repr__(self):
        return "CENTER"


CENTER = Centered()


def round_half_up(value):
    """Round .5 upwards (round() would pick the even neighbour)."""
    return int(math.floor(value + 0.5))


def resolve_coordinate(coord, canvas_extent, buffer_extent):
    """Turn an int or CENTER into a concrete canvas offset."""
    if isinstance(coord, Centered):
        return round_half_up(canvas_extent / 2) - round_half_up(buffer_extent / 2)
    return coord


def fill(size, char=BLANK):
    """Create a height x width grid of char."""
    return [[char] * size["width"] for _ in range(size["height"])]


def blit(buf, position, canvas, ignore_char=None):
    """Copy every cell of buf onto canvas at position (x, y).

    Cells equal to ignore_char are skipped. There is no clipping: a cell
    landing outside the canvas raises IndexError.
    """
    canvas_h = len(canvas)
    canvas_w = len(canvas[0]) if canvas else 0
    buf_w = len(buf[0]) if buf else 0
    x = resolve_coordinate(position[0], canvas_w, buf_w)
    y = resolve_coordinate(position[1], canvas_h, len(buf))

    for by, row in enumerate(buf):
        for bx, cell in enumerate(row):
            if cell == ignore_char:
                continue
            ty, tx = y + by, x + bx
            if not (0 <= ty < canvas_h and 0 <= tx < len(canvas[ty])):
                raise IndexError(
                    f"blit target ({tx}, {ty}) outside {canvas_w}x{canvas_h} canvas")
            canvas[ty][tx] = cell


def canvas_to_lines(canvas):
    """Join canvas rows into strings for the screen."""
    return ["".join(row) for row in canvas]


# ---------------------------------------------------------------------------
# Header / footer bands
# ---------------------------------------------------------------------------

# Each row is (left, fill, right); fill repeats to span the terminal width.
HEADER_SPEC = [
    ("|----", "----(*)----", "----|"),
    (" \\", "_", "/ "),
    (" @-/  | ", "V   ", " |  \\-@ "),
    ("      ", "=", "      "),
    ("      ||||  ", "  ||||  ", "  ||||      "),
    ("    __|", "_", "|__    "),
    ("    \\", "=", "/    "),
    ("       |", "=", "|       "),
    ("         |", "_", "|         "),
]

FOOTER_SPEC = [
    ("  |", "-", "|  "),
    (" /", "_", "\\ "),
    ("|", " ", "|"),
    ("|", "_", "|"),
]


def repeat_trunc(pattern, width):
    """Repeat pattern and cut it to exactly width characters."""
    if width <= 0:
        return ""
    return (pattern * (width // len(pattern) + 1))[:width]


def gen_band(spec, width):
    """Build a header/footer buffer width characters wide."""
    band = []
    for left, pattern, right in spec:
        if len(left) != len(right):
            raise ValueError(
                f"Mismatched left and right lengths: {left!r} / {right!r}")
        row = left + repeat_trunc(pattern, width - len(left) - len(right)) + right
        band.append(list(row))
    return band


# ---------------------------------------------------------------------------
# Column art
# ---------------------------------------------------------------------------

TOP_COLUMN_CAP = [
    "|____________|",
    "|============|",
    r" *\________/* ",
    "   {      }   ",
    "   )      (   ",
    "  `--------'  ",
]

TOP_COLUMN_BASE = [
    "  ==========  ",
    r"  `\/%_%-\/,  ",
    r" )\/-%\/%_\/( ",
    "(@..@.%%.@..@)",
    "^^^^^^^^^^^^^^",
]

BOTTOM_COLUMN_CAP = [
    "______________",
    "(@..@.%%.@..@)",
    " )U-U%U.%U_U( ",
    "  ,U%U_U%-U`  ",
    "  ==========  ",
]

BOTTOM_COLUMN_BASE = [
    "  ,________,  ",
    "   )      (   ",
    "   {      }   ",
    r" _/________\_ ",
    "|____________|",
    "| ---------- |",
    "|____________|",
]

COLUMN_FILLER = "   ||||||||   "

# Edge glyphs (first row, interior rows, last rows) drawn where art is clipped
TOP_LEFT_EDGES = ("|", "(", "`")
TOP_RIGHT_EDGES = ("|", ")", "'")
BOTTOM_LEFT_EDGES = (",", "(", "|")
BOTTOM_RIGHT_EDGES = ("\\", ")", "|")


def clip_column(rows, cutoff, left_edges, right_edges, tail_rows=1):
    """Clip |cutoff| characters off one side of the column art.

    Negative cutoff clips the left side, positive the right. The character
    next to the cut becomes an edge glyph so the stub still looks closed.
    Rows come back empty once the whole width is cut away.
    """
    if cutoff == 0:
        return [list(row) for row in rows]

    first, interior, last = left_edges if cutoff < 0 else right_edges
    clipped = []
    for i, row in enumerate(rows):
        if abs(cutoff) >= len(row):
            clipped.append([])
            continue
        if i == 0:
            edge = first
        elif i >= len(rows) - tail_rows:
            edge = last
        else:
            edge = interior
        if cutoff < 0:
            clipped.append([edge] + list(row[-cutoff + 1:]))
        else:
            clipped.append(list(row[:-cutoff - 1]) + [edge])
    return clipped


def build_column(cap, middle_height, base, name):
    """Stack cap, filler and base, checking every row is COLUMN_WIDTH wide."""
    rows = cap + [COLUMN_FILLER] * middle_height + base
    if not all(len(row) == COLUMN_WIDTH for row in rows):
        raise ValueError(f"Invalid {name} column width")
    return rows


def top_column(middle_height, cutoff=0):
    """Render a column hanging from the header."""
    rows = build_column(TOP_COLUMN_CAP, middle_height, TOP_COLUMN_BASE, "top")
    return clip_column(rows, cutoff, TOP_LEFT_EDGES, TOP_RIGHT_EDGES)


def bottom_column(middle_height, cutoff=0):
    """Render a column standing on the footer."""
    rows = build_column(BOTTOM_COLUMN_CAP, middle_height, BOTTOM_COLUMN_BASE, "bottom")
    return clip_column(rows, cutoff, BOTTOM_LEFT_EDGES, BOTTOM_RIGHT_EDGES,
                       tail_rows=2)


TOP_COLUMN_BASELINE_HEIGHT = len(top_column(0))
BOTTOM_COLUMN_BASELINE_HEIGHT = len(bottom_column(0))

MIN_HEIGHT = (
    len(HEADER_SPEC) - TOP_COLUMN_OVERDRAW
    + len(FOOTER_SPEC) - BOTTOM_COLUMN_OVERDRAW
    + TOP_COLUMN_BASELINE_HEIGHT + BOTTOM_COLUMN_BASELINE_HEIGHT
    + MIN_COLUMN_MIDDLE_HEIGHT * 2
    + GATE_GAP_RANGE[1]
)


def column_cutoff(x, usable_width):
    """How much of a column at world x hangs off the play field."""
    if x < 0:
        return x
    if x > usable_width:
        return x - usable_width - 1
    return 0


def render_columns(state, canvas, layout):
    """Draw every gate and drop the ones that have scrolled off the left.

    Top and bottom lists are compacted together so pairs stay aligned.
    """
    kept_top = []
    kept_bottom = []
    for top, bottom in zip(state["top_columns"], state["bottom_columns"]):
        cutoff = column_cutoff(top["x"], layout["usable_width"])
        top_buf = top_column(top["middle_height"], cutoff)
        bottom_buf = bottom_column(bottom["middle_height"], cutoff)
        if top["x"] < 0 and not top_buf[0]:
            continue

        kept_top.append(top)
        kept_bottom.append(bottom)
        x = SIDE_PADDING + max(0, top["x"])
        blit(top_buf, (x, layout["top_column_y"]), canvas)
        blit(bottom_buf,
             (x, layout["height"] - len(bottom_buf) - BOTTOM_COLUMN_OVERDRAW),
             canvas)

    state["top_columns"] = kept_top
    state["bottom_columns"] = kept_bottom


# ---------------------------------------------------------------------------
# Obstacle generation
# ---------------------------------------------------------------------------

def scroll_columns(state):
    """Move every column one character to the left."""
    for column in state["top_columns"]:
        column["x"] -= 1
    for column in state["bottom_columns"]:
        column["x"] -= 1


def spawn_columns(state, layout):
    """Add gates to the right until the next one would not fit.

    Returns the number of gates spawned.
    """
    usable = layout["usable_column_height"]
    spawned = 0
    while True:
        distance = random.randint(*GATE_DISTANCE_RANGE)
        if state["top_columns"]:
            last_x = state["top_columns"][-1]["x"]
        else:
            last_x = layout["width"] - SEED_OFFSET
        x = last_x + COLUMN_WIDTH + distance
        if x > layout["width"]:
            break

        gap = random.randint(*GATE_GAP_RANGE)
        gap_y = random.randint(0, usable - gap)
        state["top_columns"].append({
            "x": x,
            "middle_height": gap_y + MIN_COLUMN_MIDDLE_HEIGHT,
        })
        state["bottom_columns"].append({
            "x": x,
            "middle_height": usable - gap_y - gap + MIN_COLUMN_MIDDLE_HEIGHT,
        })
        logger.debug("Spawned gate at x=%d (gap %d at %d)", x, gap, gap_y)
        spawned += 1
    return spawned


# ---------------------------------------------------------------------------
# Player body
# ---------------------------------------------------------------------------

def clamp_body(state, layout):
    """Pin segments to the play field; a pinned head loses its velocity."""
    ys = state["segment_ys"]
    top = layout["play_top"]
    bottom = layout["play_bottom"]
    for i, y in enumerate(ys):
        if y <= top:
            ys[i] = float(top)
        elif y >= bottom:
            ys[i] = float(bottom)
        else:
            continue
        if i == 0:
            state["vy"] = 0.0


def advance_body(state, layout):
    """Apply gravity to the head and shift the trail one step behind it."""
    ys = state["segment_ys"]
    previous = list(ys)
    for i in range(1, len(ys)):
        ys[i] = previous[i - 1]

    state["vy"] += GRAVITY
    ys[0] += state["vy"]
    clamp_body(state, layout)


def apply_tension(segment_ys):
    """Pull each trailing segment a quarter of the way to its predecessor."""
    for i in range(1, len(segment_ys)):
        segment_ys[i] += (segment_ys[i - 1] - segment_ys[i]) * TENSION


# ---------------------------------------------------------------------------
# Collision detection
# ---------------------------------------------------------------------------

def is_colliding(glyph, row, layout):
    """A visible glyph inside the play field, or any vertical bar, is solid."""
    inside = layout["play_top"] < row < layout["play_bottom"]
    return (glyph != BLANK and inside) or glyph == BAR


def detect_collision(canvas, segment_ys, layout):
    """Sample the canvas under each segment, drawing the ones that survive.

    Returns a dict describing the first hit, or None.
    """
    for i, y in enumerate(segment_ys):
        row = round_half_up(y)
        col = layout["player_x"] - i
        glyph = canvas[row][col]
        if is_colliding(glyph, row, layout):
            return {"segment": i, "row": row, "col": col, "glyph": glyph}
        blit([[LABEL[-1 - i]]], (col, row), canvas)
    return None


def draw_body(canvas, segment_ys, layout):
    """Draw the label along the body without collision checks."""
    for i, y in enumerate(segment_ys):
        blit([[LABEL[-1 - i]]], (layout["player_x"] - i, round_half_up(y)), canvas)


# ---------------------------------------------------------------------------
# Game state and layout
# ---------------------------------------------------------------------------

def calculate_layout(size):
    """Derive the play field geometry from the terminal size."""
    width = size["width"]
    height = size["height"]
    header_height = len(HEADER_SPEC)
    footer_height = len(FOOTER_SPEC)
    usable_column_height = (
        height
        - header_height + TOP_COLUMN_OVERDRAW
        - footer_height + BOTTOM_COLUMN_OVERDRAW
        - TOP_COLUMN_BASELINE_HEIGHT
        - BOTTOM_COLUMN_BASELINE_HEIGHT
        - MIN_COLUMN_MIDDLE_HEIGHT * 2
    )
    return {
        "width": width,
        "height": height,
        "header_height": header_height,
        "footer_height": footer_height,
        "play_top": header_height,
        "play_bottom": height - footer_height,
        "usable_width": width - SIDE_PADDING * 2 - COLUMN_WIDTH,
        "usable_column_height": usable_column_height,
        "top_column_y": header_height - TOP_COLUMN_OVERDRAW,
        "player_x": PLAYER_X,
    }


def viewport_fits(size):
    """True when the terminal can hold the whole play field."""
    return size["width"] >= MIN_WIDTH and size["height"] >= MIN_HEIGHT


def initial_state(size):
    """Fresh game: no columns, body resting at mid-field."""
    mid = float(round_half_up(size["height"] / 2))
    return {
        "top_columns": [],
        "bottom_columns": [],
        "segment_ys": [mid] * len(LABEL),
        "vy": 0.0,
        "score": 0,
        "game_over_at": None,
    }


def is_game_over(state):
    return state["game_over_at"] is not None


# ---------------------------------------------------------------------------
# Frame composition
# ---------------------------------------------------------------------------

def compose_scene(state, layout):
    """Bands and columns: everything the body can run into."""
    canvas = fill(layout)
    blit(gen_band(HEADER_SPEC, layout["width"]), (0, 0), canvas)
    footer = gen_band(FOOTER_SPEC, layout["width"])
    blit(footer, (0, layout["height"] - len(footer)), canvas)
    render_columns(state, canvas, layout)
    return canvas


def game_over_box(score, high_score):
    """The boxed GAME OVER message, with a blank margin around it."""
    inner = 31
    rows = [
        "",
        "GAME OVER",
        "",
        f"Score: {score}    Best: {high_score}",
        "",
        "Press SPACE to play again",
        "",
    ]
    blank = " " * (inner + 10)
    lines = [blank, blank, "    ┌" + "─" * inner + "┐    "]
    for text in rows:
        lines.append("    │" + text.center(inner) + "│    ")
    lines.append("    └" + "─" * inner + "┘    ")
    lines += [blank, blank]
    return [list(line) for line in lines]


def compose_display(state, layout, high_score=0):
    """The frame shown to the player."""
    canvas = compose_scene(state, layout)
    clamp_body(state, layout)
    draw_body(canvas, state["segment_ys"], layout)
    if is_game_over(state):
        blit(game_over_box(state["score"], high_score), (CENTER, CENTER), canvas)
    else:
        blit([list(f" SCORE {state['score']} ")], (CENTER, layout["height"] - 1), canvas)
    return canvas


# ---------------------------------------------------------------------------
# Tick and activate
# ---------------------------------------------------------------------------

def tick(state, size, now, high_score=0):
    """Advance the game one step and return the display canvas."""
    layout = calculate_layout(size)
    if is_game_over(state):
        return compose_display(state, layout, high_score)

    state["score"] += 1
    scroll_columns(state)
    spawn_columns(state, layout)

    # Collision is judged on the raw positions, before tension smooths them.
    canvas = compose_scene(state, layout)
    advance_body(state, layout)
    hit = detect_collision(canvas, state["segment_ys"], layout)
    if hit is not None:
        state["game_over_at"] = now
        logger.info("Collision: segment %d at row %d, col %d (%r), score %d",
                    hit["segment"], hit["row"], hit["col"], hit["glyph"],
                    state["score"])

    apply_tension(state["segment_ys"])
    return compose_display(state, layout, high_score)


def activate(state, now, size):
    """Jump while playing; restart once the crash cooldown has passed.

    Returns True if the game was reset.
    """
    if not is_game_over(state):
        state["vy"] = JUMP_IMPULSE
        return False
    if now - state["game_over_at"] < RESTART_COOLDOWN:
        return False
    state.clear()
    state.update(initial_state(size))
    logger.info("Game reset")
    return True


# ---------------------------------------------------------------------------
# Terminal I/O
# ---------------------------------------------------------------------------

def measure_viewport(stdscr):
    """Terminal size in character cells."""
    height, width = stdscr.getmaxyx()
    for value in (width, height):
        if not isinstance(value, int) or value <= 0:
            raise RuntimeError(f"Invalid window size: {width}x{height}")
    return {"width": width, "height": height}


def is_activate_key(key):
    """Space bar, or a mouse button press."""
    if key == ord(' '):
        return True
    if key != curses.KEY_MOUSE:
        return False
    try:
        _, _, _, _, bstate = curses.getmouse()
    except curses.error:
        return False
    return bool(bstate & POINTER_PRESS_MASK)


def present(stdscr, canvas):
    """Copy the canvas to the screen."""
    stdscr.erase()
    for y, line in enumerate(canvas_to_lines(canvas)):
        try:
            stdscr.addstr(y, 0, line)
        except curses.error:
            # Writing the bottom-right cell moves the cursor off-screen.
            pass
    stdscr.refresh()


def draw_too_small(stdscr, size):
    """Tell the player the terminal needs to grow."""
    stdscr.erase()
    lines = [
        "Terminal too small!",
        f"Need {MIN_HEIGHT}x{MIN_WIDTH}, got {size['height']}x{size['width']}",
        "Press 'q' to quit.",
    ]
    for y, line in enumerate(lines):
        try:
            stdscr.addstr(y, 0, line[:max(0, size["width"] - 1)])
        except curses.error:
            pass
    stdscr.refresh()


# ---------------------------------------------------------------------------
# Main game
# ---------------------------------------------------------------------------

def main(stdscr):
    """Main game loop -- called by curses.wrapper()."""
    curses.curs_set(0)
    stdscr.keypad(True)
    curses.mousemask(curses.ALL_MOUSE_EVENTS)

    size = measure_viewport(stdscr)
    logger.info("Viewport %dx%d", size["width"], size["height"])

    # Terminal size check
    if not viewport_fits(size):
        draw_too_small(stdscr, size)
        stdscr.nodelay(False)
        while stdscr.getch() not in (ord('q'), ord('Q')):
            pass
        return

    stdscr.nodelay(True)
    stdscr.timeout(0)

    high_score = load_high_score()
    state = initial_state(size)
    frame = compose_display(state, calculate_layout(size), high_score)

    while True:
        frame_start = time.time()

        # --- Input ---
        while True:
            key = stdscr.getch()
            if key == -1:
                break
            if key in (ord('q'), ord('Q')):
                return
            if key == curses.KEY_RESIZE:
                old_height = size["height"]
                size = measure_viewport(stdscr)
                logger.debug("Resized to %dx%d", size["width"], size["height"])
                if size["height"] != old_height:
                    # Column heights were sized for the old field.
                    state["top_columns"] = []
                    state["bottom_columns"] = []
            elif is_activate_key(key):
                if activate(state, time.time(), size):
                    high_score = load_high_score()
            else:
                continue
            if viewport_fits(size):
                frame = compose_display(state, calculate_layout(size), high_score)

        if not viewport_fits(size):
            draw_too_small(stdscr, size)
            time.sleep(TICK_INTERVAL)
            continue

        # --- Update ---
        if not is_game_over(state):
            frame = tick(state, size, frame_start, high_score)
            if is_game_over(state):
                high_score = update_high_score(state["score"])
                frame = compose_display(state, calculate_layout(size), high_score)

        present(stdscr, frame)

        # Tick rate limiter
        elapsed = time.time() - frame_start
        time.sleep(max(0, TICK_INTERVAL - elapsed))


def run():
    """Console entry point."""
    setup_logging(os.getenv("CORINTHIUM_DEBUG", "false").lower() == "true")
    logger.info("Corinthium starting")
    curses.wrapper(main)


if __name__ == "__main__":
    run()
