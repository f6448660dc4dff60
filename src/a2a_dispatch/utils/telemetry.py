"""OpenTelemetry tracing decorators.

`trace_function` wraps a sync or async callable in a span; `trace_class`
applies it to every public method of a class. Exceptions are recorded on
the span and re-raised, so tracing never changes behaviour.

Usage:
    ```python
    @trace_function(span_name='dispatch.classify')
    def classify(text): ...


    @trace_class(kind=SpanKind.CLIENT, exclude_list=['close'])
    class PeerClient: ...
    ```
"""

import functools
import inspect
import logging

from opentelemetry import trace
from opentelemetry.trace import SpanKind as _SpanKind
from opentelemetry.trace import StatusCode


SpanKind = _SpanKind
__all__ = ['SpanKind', 'trace_class', 'trace_function']
INSTRUMENTING_MODULE_NAME = 'a2a-dispatch'
INSTRUMENTING_MODULE_VERSION = '0.1.0'

logger = logging.getLogger(__name__)


def _get_tracer():
    return trace.get_tracer(
        INSTRUMENTING_MODULE_NAME, INSTRUMENTING_MODULE_VERSION
    )


def trace_function(
    func=None,
    *,
    span_name=None,
    kind=SpanKind.INTERNAL,
    attributes=None,
):
    """Decorator that records a span around each call of `func`.

    Can be applied bare (`@trace_function`) or with arguments
    (`@trace_function(span_name='x', kind=SpanKind.CLIENT)`).

    Args:
        func: The function to wrap. None when used with arguments.
        span_name: Span name; defaults to ``'{module}.{qualname}'``.
        kind: The OpenTelemetry span kind.
        attributes: Static attributes set on every span.
    """
    if func is None:
        return functools.partial(
            trace_function,
            span_name=span_name,
            kind=kind,
            attributes=attributes,
        )

    actual_span_name = span_name or f'{func.__module__}.{func.__qualname__}'

    def _start(span):
        for key, value in (attributes or {}).items():
            span.set_attribute(key, value)

    def _fail(span, exc):
        span.record_exception(exc)
        span.set_status(StatusCode.ERROR, description=str(exc))

    if inspect.iscoroutinefunction(func):

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            with _get_tracer().start_as_current_span(
                actual_span_name, kind=kind
            ) as span:
                _start(span)
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _fail(span, e)
                    raise
                span.set_status(StatusCode.OK)
                return result

        return async_wrapper

    @functools.wraps(func)
    def sync_wrapper(*args, **kwargs):
        with _get_tracer().start_as_current_span(
            actual_span_name, kind=kind
        ) as span:
            _start(span)
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                _fail(span, e)
                raise
            span.set_status(StatusCode.OK)
            return result

    return sync_wrapper


def trace_class(
    include_list: list[str] | None = None,
    exclude_list: list[str] | None = None,
    kind=SpanKind.INTERNAL,
):
    """Class decorator applying `trace_function` to selected methods.

    Dunder methods are never traced. When `include_list` is given only
    those methods are traced; otherwise every method not named in
    `exclude_list` is.
    """
    exclude_list = exclude_list or []

    def decorator(cls):
        for name, method in inspect.getmembers(cls, inspect.isfunction):
            if name.startswith('__') and name.endswith('__'):
                continue
            if include_list and name not in include_list:
                continue
            if not include_list and name in exclude_list:
                continue
            logger.debug(f'Tracing {cls.__name__}.{name}')
            setattr(
                cls,
                name,
                trace_function(
                    span_name=f'{cls.__module__}.{cls.__name__}.{name}',
                    kind=kind,
                )(method),
            )
        return cls

    return decorator
