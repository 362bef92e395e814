"""Handlebars rendering of message cards and inline roll tokens.

Purely cosmetic: the trigger logic only needs *a* string to hand to the
output collaborator. Templates are compiled once and cached by source.
"""

from collections.abc import Callable, Sequence
from typing import Any

import pybars

from proximity_trigger.models import CardStyle, RollResult

_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


class RenderError(RuntimeError):
    """Raised when a card template fails to compile or render."""


ROLL_TEMPLATE = (
    '<span style="background: {{background}}; color: {{color}}; '
    "border: 1px solid {{border}}; border-radius: 4px; padding: 2px 6px; "
    'font-weight: bold; font-family: monospace;" title="{{details}}">{{total}}</span>'
)

INVALID_ROLL_TEMPLATE = (
    '<span style="color: red; font-weight: bold;">[Invalid Roll: {{expression}}]</span>'
)

CARD_TEMPLATE = (
    '<div class="{{prefix}}card" style="background: {{style.background_color}}; '
    "border: 3px solid {{style.border_color}}; border-radius: 10px; padding: 15px; "
    'margin: 10px; box-shadow: 0 4px 8px rgba(0,0,0,0.3);">'
    "{{#if image}}"
    '<div class="{{prefix}}card-image-container" style="text-align: center; margin-bottom: 10px;">'
    '<img class="{{prefix}}card-image" src="{{image}}" style="max-width: 200px; '
    'border: 4px solid {{style.border_color}}; border-radius: 8px;">'
    "</div>"
    "{{/if}}"
    '<div class="{{prefix}}card-dialog-bubble-container" style="background: {{style.bubble_color}}; '
    'border: 2px solid {{style.border_color}}; border-radius: 8px; padding: 12px;">'
    '<p class="{{prefix}}card-dialog-bubble-speaker" style="margin: 0; color: {{style.text_color}};">'
    "{{#if style.badge}}"
    '<img src="{{style.badge}}" style="height: 20px; width: 20px; '
    'border: 3px solid {{style.border_color}}; border-radius: 50%;"> '
    "{{/if}}"
    "<strong>{{speaker}}:</strong></p>"
    '<p class="{{prefix}}card-dialog-bubble-content" style="margin: 8px 0 0 0; '
    'color: {{style.text_color}}; font-style: italic;">{{{content}}}</p>'
    "</div></div>"
)


def render_template(template_str: str, context: dict[str, Any]) -> str:
    """Compile (cached) and render a Handlebars template."""
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        result = compiled(context)
    except Exception as e:
        raise RenderError(f"Template error: {e}") from e
    # older pybars releases hand back a strlist rather than a str
    return result if isinstance(result, str) else "".join(result)


def render_roll(result: RollResult, style: CardStyle) -> str:
    """Inline token for a dice roll; colours are the card's, inverted."""
    if not result.success:
        return render_template(INVALID_ROLL_TEMPLATE, {"expression": result.expression})
    return render_template(ROLL_TEMPLATE, {
        "background": style.text_color,
        "color": style.bubble_color,
        "border": style.border_color,
        "details": result.details,
        "total": str(result.total),
    })


def render_card(speaker: str, content: str, style: CardStyle, image: str | None = None) -> str:
    """Full message card. content is already-rendered markup and is not escaped."""
    prefix = speaker.strip().split(" ")[0] + "-" if speaker.strip() else ""
    return render_template(CARD_TEMPLATE, {
        "prefix": prefix,
        "speaker": speaker,
        "content": content,
        "image": image or "",
        "style": style.model_dump(),
    })


def render_actions(actor_name: str, buttons: Sequence[tuple[str, str]]) -> str:
    """Follow-up card listing the extracted actions as chat buttons.

    Built without Handlebars: the chat template syntax itself uses ``{{ }}``.
    """
    fields = " ".join(f"{{{{[{label}]({command})}}}}" for label, command in buttons)
    return f"&{{template:default}} {{{{name={actor_name}'s opportunities}}}} {fields}"


def whisper_prefix(style: CardStyle, actor_name: str) -> str:
    if style.whisper == "character":
        return f"/w {actor_name} "
    if style.whisper == "gm":
        return "/w gm "
    return ""
