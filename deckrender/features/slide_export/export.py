from __future__ import annotations

import io
import logging
import math
from typing import Any, Mapping, Optional, Sequence

from pptx import Presentation
from pptx.dml.color import RGBColor
from pptx.enum.text import MSO_ANCHOR, PP_ALIGN
from pptx.util import Emu, Inches, Pt

from .exceptions import DocumentAssemblyError
from .renderer import RenderedSlide
from .text import NormalizedText

logger = logging.getLogger(__name__)

PRESENTATION_MEDIA_TYPE = (
    "application/vnd.openxmlformats-officedocument.presentationml.presentation"
)

EMU_PER_INCH = 914400
BLANK_LAYOUT_INDEX = 6

DEFAULT_SLIDE_WIDTH_IN = 10.0
DEFAULT_SLIDE_HEIGHT_IN = 5.625

DEFAULT_TEXT_OPTIONS: dict[str, Any] = {
    "x": "5%",
    "y": "5%",
    "w": "90%",
    "h": "15%",
    "color": "363636",
    "fontSize": 18,
    "fontFace": "Arial",
    "align": "left",
    "valign": "top",
}

TEXT_OPTION_ALIASES = {
    "fontFamily": "fontFace",
    "left": "x",
    "top": "y",
    "width": "w",
    "height": "h",
}


def _safe_float(value: Any, default: float = 0.0) -> float:
    if value is None or isinstance(value, bool):
        return default
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(numeric) or math.isinf(numeric):
        return default
    return numeric


def _parse_hex_color(value: Any) -> Optional[RGBColor]:
    if not isinstance(value, str) or not value:
        return None
    cleaned = value.strip().lstrip('#')
    if len(cleaned) not in {6, 3}:
        return None
    if len(cleaned) == 3:
        cleaned = ''.join(ch * 2 for ch in cleaned)
    try:
        red = int(cleaned[0:2], 16)
        green = int(cleaned[2:4], 16)
        blue = int(cleaned[4:6], 16)
    except ValueError:
        return None
    return RGBColor(red, green, blue)


def _parse_flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {'true', '1', 'yes', 'on'}
    if isinstance(value, (bool, int)):
        return bool(value)
    return False


def _map_alignment(value: Any) -> PP_ALIGN:
    if value == 'center':
        return PP_ALIGN.CENTER
    if value == 'right':
        return PP_ALIGN.RIGHT
    if value == 'justify':
        return PP_ALIGN.JUSTIFY
    return PP_ALIGN.LEFT


def _map_vertical_anchor(value: Any) -> MSO_ANCHOR:
    if value == 'middle':
        return MSO_ANCHOR.MIDDLE
    if value == 'bottom':
        return MSO_ANCHOR.BOTTOM
    return MSO_ANCHOR.TOP


def _parse_length(value: Any, extent: int) -> Optional[int]:
    """Return EMUs for ``value``: numbers are inches, ``"N%"`` is relative to ``extent``."""

    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, str):
        token = value.strip()
        if token.endswith('%'):
            percent = _safe_float(token[:-1].strip(), -1.0)
            if percent < 0:
                return None
            return int(round(extent * percent / 100.0))
        value = token

    inches = _safe_float(value, -1.0)
    if inches < 0:
        return None
    return int(round(inches * EMU_PER_INCH))


def _resolve_length(value: Any, extent: int, fallback: Any) -> Emu:
    length = _parse_length(value, extent)
    if length is None:
        length = _parse_length(fallback, extent) or 0
    return Emu(length)


def resolve_text_options(options: Mapping[str, Any]) -> dict[str, Any]:
    """Overlay per-slide options on the default text box styling."""

    resolved = dict(DEFAULT_TEXT_OPTIONS)
    for key, value in options.items():
        resolved[TEXT_OPTION_ALIASES.get(key, key)] = value
    return resolved


def _apply_font_formatting(font, options: Mapping[str, Any]) -> None:
    font_face = options.get('fontFace')
    if isinstance(font_face, str) and font_face.strip():
        font.name = font_face.strip()
    else:
        font.name = DEFAULT_TEXT_OPTIONS['fontFace']

    size = _safe_float(options.get('fontSize'), 0)
    if size <= 0:
        size = float(DEFAULT_TEXT_OPTIONS['fontSize'])
    font.size = Pt(size)

    font.bold = _parse_flag(options.get('bold'))
    font.italic = _parse_flag(options.get('italic'))
    font.underline = _parse_flag(options.get('underline'))

    color = _parse_hex_color(options.get('color')) or _parse_hex_color(DEFAULT_TEXT_OPTIONS['color'])
    font.color.rgb = color


def _add_background(slide, image: bytes, slide_width: int, slide_height: int, position: int) -> None:
    try:
        picture = slide.shapes.add_picture(
            io.BytesIO(image),
            Emu(0),
            Emu(0),
            width=Emu(slide_width),
            height=Emu(slide_height),
        )
    except Exception as exc:
        raise DocumentAssemblyError(f"Unable to embed the image for slide {position}: {exc}") from exc

    picture.name = f"slide-{position}-background"


def _add_text_overlay(slide, text: NormalizedText, slide_width: int, slide_height: int) -> None:
    options = resolve_text_options(text.options)

    shape = slide.shapes.add_textbox(
        _resolve_length(options.get('x'), slide_width, DEFAULT_TEXT_OPTIONS['x']),
        _resolve_length(options.get('y'), slide_height, DEFAULT_TEXT_OPTIONS['y']),
        _resolve_length(options.get('w'), slide_width, DEFAULT_TEXT_OPTIONS['w']),
        _resolve_length(options.get('h'), slide_height, DEFAULT_TEXT_OPTIONS['h']),
    )
    shape.name = "text-overlay"

    text_frame = shape.text_frame
    text_frame.clear()
    text_frame.word_wrap = True
    text_frame.vertical_anchor = _map_vertical_anchor(options.get('valign'))

    for index, line in enumerate(text.value.split('\n')):
        paragraph = text_frame.add_paragraph() if index > 0 else text_frame.paragraphs[0]
        paragraph.text = line
        paragraph.alignment = _map_alignment(options.get('align'))
        for run in paragraph.runs:
            _apply_font_formatting(run.font, options)


def build_presentation(
    slides: Sequence[RenderedSlide],
    *,
    slide_width_in: float = DEFAULT_SLIDE_WIDTH_IN,
    slide_height_in: float = DEFAULT_SLIDE_HEIGHT_IN,
    title: Optional[str] = None,
) -> bytes:
    """Compose rendered slides into a PPTX document, one page per slide in order.

    Every page carries its image as a full-bleed picture anchored at the
    origin; slides with text get a text box on top of it.
    """

    if not slides:
        raise DocumentAssemblyError('No rendered slides to assemble.')

    try:
        presentation = Presentation()
        presentation.slide_width = Inches(slide_width_in)
        presentation.slide_height = Inches(slide_height_in)
        slide_width = int(presentation.slide_width)
        slide_height = int(presentation.slide_height)

        document_title = (title or '').strip()
        if document_title:
            presentation.core_properties.title = document_title

        layout = presentation.slide_layouts[BLANK_LAYOUT_INDEX]
        for position, rendered in enumerate(slides, start=1):
            slide = presentation.slides.add_slide(layout)
            _add_background(slide, rendered.image, slide_width, slide_height, position)
            if rendered.text is not None:
                _add_text_overlay(slide, rendered.text, slide_width, slide_height)

        output = io.BytesIO()
        presentation.save(output)
    except DocumentAssemblyError:
        raise
    except Exception as exc:
        raise DocumentAssemblyError(f"Unable to build the presentation document: {exc}") from exc

    document = output.getvalue()
    logger.debug('Assembled presentation: %d slide(s), %d bytes', len(slides), len(document))
    return document


__all__ = [
    "DEFAULT_TEXT_OPTIONS",
    "PRESENTATION_MEDIA_TYPE",
    "build_presentation",
    "resolve_text_options",
]
