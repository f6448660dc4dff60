"""Classifies reasoning-engine output as a final answer or a directive.

The output is parsed as JSON and handed to an ordered list of shape
matchers. The first matcher that recognizes the document produces the
`Directive`; anything unmatched, or anything that is not a JSON object,
is a `FinalAnswer` carrying the original text.

Accepted shapes::

    {"tool": "name", "tool_input": {...}}
    {"action": "name", "action_input": {...}}
    {"tool": "name", "targetAgentId": "...", "taskInput": "..."}
"""

import json
import logging

from collections.abc import Callable
from typing import Any

from a2a_dispatch.dispatch.result import ClassifiedOutput, Directive, FinalAnswer
from a2a_dispatch.utils.telemetry import trace_function


logger = logging.getLogger(__name__)

NAME_FIELDS = ('tool', 'action')
ARGUMENT_FIELDS = ('tool_input', 'action_input', 'args', 'arguments')

ShapeMatcher = Callable[[dict[str, Any]], Directive | None]


def _capability_name(document: dict[str, Any]) -> str | None:
    for field in NAME_FIELDS:
        value = document.get(field)
        if isinstance(value, str) and value:
            return value
    return None


def match_nested_arguments(document: dict[str, Any]) -> Directive | None:
    """Matches a name field paired with an explicit arguments field."""
    name = _capability_name(document)
    if name is None:
        return None
    for field in ARGUMENT_FIELDS:
        if field not in document:
            continue
        arguments = document[field]
        if arguments is None:
            arguments = {}
        elif not isinstance(arguments, dict):
            arguments = {'input': arguments}
        return Directive(capability_name=name, arguments=arguments)
    return None


def match_flat_arguments(document: dict[str, Any]) -> Directive | None:
    """Matches a name field whose arguments sit beside it at the top level."""
    name = _capability_name(document)
    if name is None:
        return None
    arguments = {
        key: value
        for key, value in document.items()
        if key not in NAME_FIELDS
    }
    return Directive(capability_name=name, arguments=arguments)


DEFAULT_MATCHERS: tuple[ShapeMatcher, ...] = (
    match_nested_arguments,
    match_flat_arguments,
)


@trace_function(span_name='a2a_dispatch.classify_output')
def classify_output(
    output: str, matchers: tuple[ShapeMatcher, ...] = DEFAULT_MATCHERS
) -> ClassifiedOutput:
    """Turns raw reasoning-engine text into a tagged result.

    Never raises: parse failures classify as `FinalAnswer`.

    Args:
        output: The raw text produced by the reasoning engine for one turn.
        matchers: Shape matchers tried in order.

    Returns:
        A `Directive` when a matcher recognizes the document, otherwise a
        `FinalAnswer` wrapping `output` unchanged.
    """
    try:
        document = json.loads(output)
    except (TypeError, ValueError, RecursionError) as e:
        logger.debug(f'Output is not a directive (parse error: {e})')
        return FinalAnswer(text=output)

    if not isinstance(document, dict):
        return FinalAnswer(text=output)

    for matcher in matchers:
        directive = matcher(document)
        if directive is not None:
            logger.debug(
                f'Output matched {matcher.__name__}: {directive.capability_name}'
            )
            return directive

    return FinalAnswer(text=output)
