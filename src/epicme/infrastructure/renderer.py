"""External renderer — turns a :class:`Scene` into an ffmpeg invocation.

The renderer is a separate process: it takes the output path, the scene
duration and the overlays, writes ``time=HH:MM:SS.cc`` progress lines to
stderr, exits 0 on success, and dies on SIGKILL.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from epicme.config.models import RendererConfig
from epicme.domain.scene import Overlay, Scene

LINE_SPACING = 12

_TIME_RE = re.compile(r"time=(\d{2}):(\d{2}):(\d{2})\.(\d{2})")


class Renderer(Protocol):
    """Anything that can produce the argv for rendering a scene."""

    def command(self, scene: Scene, output: Path) -> Sequence[str]: ...

    def parse_progress(self, text: str, duration: float) -> float | None: ...


def parse_progress(text: str, duration: float) -> float | None:
    """Fraction of *duration* reached by the last ``time=`` stamp in *text*.

    Returns None when *text* carries no stamp. The result is clamped to
    ``[0, 1]``.

    Examples:
        >>> parse_progress("frame=10 time=00:00:30.00 bitrate=1", 60)
        0.5
        >>> parse_progress("time=00:02:00.00", 60)
        1.0
        >>> parse_progress("no stamp here", 60) is None
        True
    """
    matches = _TIME_RE.findall(text)
    if not matches or duration <= 0:
        return None
    hours, minutes, seconds, hundredths = (int(part) for part in matches[-1])
    current = hours * 3600 + minutes * 60 + seconds + hundredths / 100
    return min(max(current / duration, 0.0), 1.0)


def escape_text(line: str) -> str:
    """Escape one overlay line for a single-quoted drawtext ``text=``.

    Examples:
        >>> escape_text("it's")
        "it'\\\\''s"
    """
    return line.replace("\\", "\\\\").replace("'", "'\\''")


def ffmpeg_color(color: str) -> str:
    """``#RRGGBB`` becomes ``0xRRGGBB``; named colors pass through."""
    return "0x" + color[1:] if color.startswith("#") else color


def drawtext_filters(overlay: Overlay, font_path: Path) -> list[str]:
    """One drawtext filter per line of *overlay*, scrolling and fading."""
    start, end = overlay.start, overlay.end
    span = end - start
    third = span / 3
    fade_in_end = start + third
    fade_out_start = end - third
    scroll = f"h-((t-{start})*(h+text_h)/{span})"
    alpha = (
        f"if(lt(t,{start}),0,if(lt(t,{fade_in_end}),1,"
        f"if(lt(t,{fade_out_start}),1,if(lt(t,{end}),(({end}-t)/{third}),0))))"
    )
    filters = []
    for index, line in enumerate(overlay.text.split("\n")):
        y_offset = index * (overlay.font_size + LINE_SPACING)
        filters.append(
            f"drawtext=fontfile={font_path}"
            f":text='{escape_text(line)}'"
            f":fontcolor={ffmpeg_color(overlay.color)}"
            f":fontsize={overlay.font_size}"
            f":x=(w-text_w)/2:y={scroll}+{y_offset}"
            f":alpha='{alpha}'"
            ":shadowcolor=black:shadowx=4:shadowy=4"
        )
    return filters


class FfmpegRenderer:
    """Builds ffmpeg argv from :class:`RendererConfig`."""

    def __init__(self, config: RendererConfig, font_path: Path) -> None:
        self._config = config
        self._font_path = font_path

    @property
    def binary(self) -> str:
        return self._config.binary

    def command(self, scene: Scene, output: Path) -> list[str]:
        cfg = self._config
        video_filter = ",".join(
            f for overlay in scene.overlays for f in drawtext_filters(overlay, self._font_path)
        )
        return [
            cfg.binary,
            "-f",
            "lavfi",
            "-i",
            f"color=c=black:s={cfg.width}x{cfg.height}:d={scene.duration:g}",
            "-vf",
            video_filter,
            "-c:v",
            "libx264",
            "-preset",
            cfg.preset,
            "-crf",
            str(cfg.crf),
            "-pix_fmt",
            "yuv420p",
            "-y",
            str(output),
        ]

    def parse_progress(self, text: str, duration: float) -> float | None:
        return parse_progress(text, duration)
