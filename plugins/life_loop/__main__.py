"""
Game of Life Frame Loop - Entry Point

Usage:
    python -m life_loop [preset] [--size WxH] [--fps N] [--pacing MODE]
                        [--on-error halt|continue] [--frames N]
                        [--snap N] [--window] [--list] [--log-level LEVEL]

Examples:
    python -m life_loop
    python -m life_loop highlife --size 40x30
    python -m life_loop --pacing interval --fps 60
    python -m life_loop --snap 200
    python -m life_loop day_night --window

Modes:
    (default)   draw frames in the terminal until Ctrl-C
    --snap N    headless: run N frames, save text + PNG, exit
    --window    pygame window

Use --list to see all available presets.
"""

import asyncio
import logging
import os
import sys

import numpy as np

from .config import DriverConfig, make_scheduler
from .driver import FrameDriver
from .errors import FrameFailure
from .presets import PRESET_ORDER, build_universe, list_presets
from .scheduling import ManualFrameScheduler
from .sinks import BufferSink, StreamSink

CELL_PX = 8


def _screenshots_dir():
    path = os.path.join(os.getcwd(), "screenshots")
    os.makedirs(path, exist_ok=True)
    return path


def snap(preset, size, frames, config):
    """Headless mode: run N frames, save the last one as text and PNG."""
    from PIL import Image

    w, h = size or (None, None)
    engine = build_universe(preset, width=w, height=h)
    host = ManualFrameScheduler()
    sink = BufferSink()
    driver = FrameDriver(host, config)
    driver.start(engine, sink)

    print(f"  {preset}: running {frames} frames...", end="", flush=True)
    try:
        host.advance(frames)
    except FrameFailure as e:
        print(f" failed: {e}")
        return 1
    driver.stop()

    out_dir = _screenshots_dir()
    txt_path = os.path.join(out_dir, f"life_{preset}.txt")
    with open(txt_path, "w", encoding="utf-8") as f:
        f.write(sink.content)

    pixels = (1 - engine.cells) * 255
    pixels = np.repeat(np.repeat(pixels, CELL_PX, axis=0), CELL_PX, axis=1)
    img = Image.fromarray(pixels.astype(np.uint8))
    png_path = os.path.join(out_dir, f"life_{preset}.png")
    img.save(png_path)
    img.save(os.path.join(out_dir, "latest.png"))
    print(f" saved: {png_path} ({driver.frame_count} frames)")
    return 0


async def run_terminal(preset, size, config, stream=None):
    """Draw frames into the terminal until the driver halts."""
    loop = asyncio.get_running_loop()
    failures = []

    def _on_loop_error(_loop, context):
        exc = context.get("exception")
        if isinstance(exc, FrameFailure):
            failures.append(exc)  # already logged by the driver
        else:
            _loop.default_exception_handler(context)

    loop.set_exception_handler(_on_loop_error)

    w, h = size or (None, None)
    engine = build_universe(preset, width=w, height=h)
    driver = FrameDriver(make_scheduler(config, loop), config)
    driver.start(engine, StreamSink(stream))
    try:
        while driver.running:
            await asyncio.sleep(0.1)
    finally:
        driver.stop()
    return 1 if failures else 0


def _parse_size(text):
    parts = text.lower().split("x")
    if len(parts) != 2:
        raise ValueError(f"size must look like WxH, got {text!r}")
    w, h = int(parts[0]), int(parts[1])
    if w <= 0 or h <= 0:
        raise ValueError(f"size must be positive, got {text!r}")
    return w, h


def main(argv=None):
    preset = "classic"
    size = None
    snap_frames = 0
    window = False
    log_level = "WARNING"
    opts = {}

    args = sys.argv[1:] if argv is None else list(argv)
    try:
        i = 0
        while i < len(args):
            arg = args[i]
            has_value = i + 1 < len(args)
            if arg == "--size" and has_value:
                size = _parse_size(args[i + 1])
                i += 2
            elif arg == "--fps" and has_value:
                opts["fps"] = float(args[i + 1])
                i += 2
            elif arg == "--pacing" and has_value:
                opts["pacing"] = args[i + 1]
                i += 2
            elif arg == "--interval" and has_value:
                opts["interval"] = float(args[i + 1])
                i += 2
            elif arg == "--on-error" and has_value:
                opts["error_policy"] = args[i + 1].lower()
                i += 2
            elif arg == "--frames" and has_value:
                opts["max_frames"] = int(args[i + 1])
                i += 2
            elif arg == "--snap" and has_value:
                snap_frames = int(args[i + 1])
                if snap_frames < 0:
                    raise ValueError(f"--snap must be >= 0, got {snap_frames}")
                i += 2
            elif arg == "--log-level" and has_value:
                log_level = args[i + 1].upper()
                if not isinstance(logging.getLevelName(log_level), int):
                    raise ValueError(f"unknown log level {log_level!r}")
                i += 2
            elif arg == "--window":
                window = True
                i += 1
            elif arg == "--list":
                print("\nAvailable presets:")
                for key, name, desc in list_presets():
                    print(f"    {key:12s} {name:18s} {desc}")
                print()
                return 0
            elif arg in ("--help", "-h"):
                print(__doc__)
                return 0
            elif arg in PRESET_ORDER:
                preset = arg
                i += 1
            else:
                print(f"Unknown argument: {arg}")
                print("Use --list to see available presets")
                return 2
    except ValueError as e:
        print(f"Bad option: {e}")
        return 2

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = DriverConfig.from_env(**opts)
    except ValueError as e:
        print(f"Bad option: {e}")
        return 2

    if snap_frames > 0:
        print(f"Headless snap mode: {preset}, {snap_frames} frames")
        return snap(preset, size, snap_frames, config)

    if window:
        from .viewer import Viewer
        Viewer(preset=preset, grid=size, config=config).run()
        return 0

    try:
        return asyncio.run(run_terminal(preset, size, config))
    except KeyboardInterrupt:
        print("\nStopped.")
        return 0


if __name__ == "__main__":
    sys.exit(main())
