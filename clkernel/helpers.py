"""
This module contains various auxiliary functions which are used throughout the library.
"""

import collections.abc
import functools
from logging import error

from mako import exceptions
from mako.template import Template


def product(seq):
    """
    Returns the product of elements in the iterable ``seq``.
    """
    return functools.reduce(lambda x1, x2: x1 * x2, seq, 1)


def wrap_in_tuple(seq_or_elem):
    """
    If ``seq_or_elem`` is a sequence, converts it to a ``tuple``,
    otherwise returns a tuple with a single element ``seq_or_elem``.
    """
    if seq_or_elem is None:
        return tuple()
    elif isinstance(seq_or_elem, str):
        return (seq_or_elem,)
    elif isinstance(seq_or_elem, collections.abc.Iterable):
        return tuple(seq_or_elem)
    else:
        return (seq_or_elem,)


def wrap_in_list(seq_or_elem):
    """
    Same as :py:func:`wrap_in_tuple`, but returns a ``list``.
    """
    return list(wrap_in_tuple(seq_or_elem))


def normalize_vector(value, default, length=3):
    """
    Converts ``value`` (an integer or a sequence of at most ``length`` integers)
    to a tuple of exactly ``length`` integers,
    filling the missing trailing components with ``default``.
    A single integer is treated as a sequence of one component.
    """
    if not isinstance(value, collections.abc.Iterable):
        value = (value,)
    value = tuple(value)
    if len(value) > length:
        raise ValueError(
            "Expected at most " + str(length) + " components, got " + str(len(value)))

    result = []
    for component in value:
        if int(component) != component:
            raise ValueError("Vector components must be integers, got " + repr(component))
        result.append(int(component))

    return tuple(result) + (default,) * (length - len(result))


def make_template(template):
    return Template(template, strict_undefined=True, imports=['import numpy'])


def render_template(template_src, **render_kwds):
    """
    Renders the ``Mako`` template source ``template_src`` with ``render_kwds``.
    On failure, logs the ``Mako`` error report and re-raises the exception.
    """
    template = make_template(template_src)
    try:
        return template.render(**render_kwds)
    except Exception:
        error(
            "Failed to render template with"
            "\nkwds: {kwds}\nsource:\n{source}\n"
            "{exception}".format(
                kwds=render_kwds, source=template_src,
                exception=exceptions.text_error_template().render()))
        raise


def numbered_listing(src):
    """
    Returns ``src`` with line numbers prepended, for error reports.
    """
    return "\n".join([str(i+1) + ":" + l for i, l in enumerate(src.split('\n'))])
