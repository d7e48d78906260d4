"""
Binding between Nodes and annotated dataclasses.

Fields are annotated through ``dataclasses.field`` metadata; the helpers
below build such fields::

    @dataclass
    class Person:
        id: str = node_id()
        type: Type = type_of('http://xmlns.com/foaf/0.1/Person')
        name: str = prop('http://xmlns.com/foaf/0.1/name')
        homepage: Optional[Node] = prop('http://xmlns.com/foaf/0.1/homepage')
        nicks: List[str] = prop('http://xmlns.com/foaf/0.1/nick', many=True)

A field annotated with an IRI (or a short name resolved through the active
context) binds the first value of that property; ``many=True`` binds every
value. Unannotated fields use their field name as the key. Fields of a base
dataclass, and of a field built with ``embed()``, are bound from the same
Node as the enclosing record.

.. module:: ldbind.binding
  :synopsis: Dataclass binding for JSON-LD nodes
"""

import dataclasses
import functools
import logging
import types
import typing
from collections import namedtuple

from ldbind.context import expand_iri, expand_property
from ldbind.error import JsonLdError
from ldbind.node import RDF_TYPE, Node, Type

__all__ = [
    'node_id', 'type_of', 'prop', 'embed', 'skip',
    'binding_plan', 'unmarshal', 'marshal', 'ID', 'SKIP'
]

logger = logging.getLogger(__name__)

# reserved annotations
ID = '@id'
SKIP = '-'

# dataclasses.field metadata keys
_KEY = 'jsonld'
_KIND = 'jsonld.kind'
_MANY = 'jsonld.many'

# one bound field: kind is 'id', 'type', 'prop' or 'embed'
Step = namedtuple('Step', ['name', 'kind', 'key', 'type', 'many'])

_UNION_TYPES = (typing.Union, getattr(types, 'UnionType', typing.Union))


def node_id(default=''):
    """
    A field bound to the node identifier.
    """
    return dataclasses.field(default=default, metadata={_KEY: ID})


def type_of(iri=None):
    """
    The type-witness field. Its value is a ``Type``; given an IRI, decoding
    requires the node to carry that type.

    :param [iri]: the expected type IRI or compact IRI.
    """
    return dataclasses.field(
        default_factory=Type, metadata={_KEY: iri, _KIND: 'type'})


def prop(key, default=None, many=False):
    """
    A field bound to a property.

    :param key: the property IRI, compact IRI or term.
    :param [default]: the value kept when the property is absent.
    :param [many]: True to bind every value into a list.
    """
    if many:
        return dataclasses.field(
            default_factory=list, metadata={_KEY: key, _MANY: True})
    return dataclasses.field(default=default, metadata={_KEY: key})


def embed(record_type):
    """
    A nested record whose fields are promoted onto the enclosing record.

    :param record_type: the embedded dataclass.
    """
    return dataclasses.field(
        default_factory=record_type, metadata={_KIND: 'embed'})


def skip(default=None):
    """
    A field that is never bound.
    """
    return dataclasses.field(default=default, metadata={_KEY: SKIP})


@functools.lru_cache(maxsize=None)
def binding_plan(record_type):
    """
    Builds the ordered binding steps for a dataclass. Computed once per
    class.

    :param record_type: the dataclass.

    :return: a tuple of Steps in field declaration order.
    """
    hints = _type_hints(record_type)
    steps = []
    for field in dataclasses.fields(record_type):
        key = field.metadata.get(_KEY)
        kind = field.metadata.get(_KIND)
        if key == SKIP:
            continue

        declared = hints.get(field.name, field.type)
        type_ = _strip_optional(declared)
        if kind == 'type' or type_ is Type:
            steps.append(Step(field.name, 'type', key, Type, False))
        elif kind == 'embed':
            steps.append(Step(field.name, 'embed', None, type_, False))
        elif key == ID:
            steps.append(Step(field.name, 'id', ID, str, False))
        else:
            many = bool(field.metadata.get(_MANY)) or _is_list_type(type_)
            if many:
                args = typing.get_args(type_)
                declared = args[0] if args else typing.Any
            steps.append(Step(
                field.name, 'prop', key or field.name, declared, many))

    logger.debug(
        'binding plan for %s: %s', record_type.__name__,
        ', '.join('%s=%s' % (s.name, s.kind) for s in steps))
    return tuple(steps)


def unmarshal(value, target, active_ctx=None):
    """
    Binds a parsed value to a target.

    :param value: the parsed value, usually a Node.
    :param target: a Node or dataclass instance to fill in place, or the
      Node class or a dataclass to instantiate.
    :param [active_ctx]: the context field keys are resolved against.

    :return: the bound object.
    """
    if isinstance(target, type):
        if issubclass(target, Node) or dataclasses.is_dataclass(target):
            return _convert(value, target, active_ctx, None)
    elif isinstance(target, Node):
        node = _require_node(value, type(target), None)
        target.id = node.id
        target.props = node.props
        return target
    elif dataclasses.is_dataclass(target):
        if target.__dataclass_params__.frozen:
            raise JsonLdError(
                'Cannot unmarshal into a frozen dataclass instance.',
                'jsonld.NonPointerTarget', {'target': type(target).__name__})
        node = _require_node(value, type(target), None)
        values = _bind(node, type(target), active_ctx)
        for name, field_value in values.items():
            setattr(target, name, field_value)
        return target

    raise JsonLdError(
        'Cannot unmarshal into a value that is neither a Node nor a '
        'dataclass.',
        'jsonld.NonPointerTarget', {'target': repr(target)})


def marshal(value, active_ctx=None):
    """
    Converts dataclass instances to Nodes, leaving other values alone.

    :param value: the value to convert.
    :param [active_ctx]: the context field keys are resolved against.

    :return: a Node, a list or the value itself.
    """
    if isinstance(value, Node):
        return value
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        node = Node()
        _fill(node, value, active_ctx)
        return node
    if isinstance(value, (list, tuple)):
        return [marshal(v, active_ctx) for v in value]
    return value


def _bind(node, record_type, active_ctx):
    values = {}
    for step in binding_plan(record_type):
        if step.kind == 'id':
            values[step.name] = node.id
        elif step.kind == 'type':
            node_types = node.props.types
            uri = node_types[0] if node_types else ''
            if step.key:
                expected = expand_iri(active_ctx, step.key)
                if expected not in node_types:
                    raise JsonLdError(
                        'Resource type does not match the record type.',
                        'jsonld.TypeMismatch',
                        {'field': step.name, 'expected': expected,
                         'actual': node_types})
                uri = expected
            values[step.name] = Type(uri)
        elif step.kind == 'embed':
            values[step.name] = _construct(
                step.type, _bind(node, step.type, active_ctx))
        else:
            key = expand_property(active_ctx, step.key)[0]
            found = node.props.get(key)
            if not found:
                continue
            if step.many:
                values[step.name] = [
                    _convert(v, step.type, active_ctx, key) for v in found]
            else:
                values[step.name] = _convert(
                    found[0], step.type, active_ctx, key)
    return values


def _fill(node, record, active_ctx):
    for step in binding_plan(type(record)):
        value = getattr(record, step.name)
        if step.kind == 'id':
            if value:
                node.id = value
        elif step.kind == 'type':
            uri = value.uri if isinstance(value, Type) else ''
            if not uri and step.key:
                uri = expand_iri(active_ctx, step.key)
            if uri and uri not in node.props.types:
                node.props.add(RDF_TYPE, uri)
        elif step.kind == 'embed':
            if value is not None:
                _fill(node, value, active_ctx)
        elif value is not None:
            key = expand_property(active_ctx, step.key)[0]
            items = value if step.many else [value]
            for item in items:
                node.props.add(key, marshal(item, active_ctx))


def _convert(value, type_, active_ctx, key):
    if type_ in (typing.Any, object):
        return value
    if value is None and _is_optional(type_):
        return None

    type_ = _strip_optional(type_)
    if typing.get_origin(type_) in _UNION_TYPES:
        for arg in typing.get_args(type_):
            try:
                return _convert(value, arg, active_ctx, key)
            except JsonLdError:
                continue
        _mismatch(value, type_, key)

    if isinstance(type_, type) and issubclass(type_, Node):
        node = _require_node(value, type_, key)
        if not isinstance(node, type_):
            node = type_(node.id, node.props)
        return node
    if dataclasses.is_dataclass(type_):
        node = _require_node(value, type_, key)
        return _construct(type_, _bind(node, type_, active_ctx))

    if value is None or isinstance(value, Node):
        _mismatch(value, type_, key)
    if type_ is float and type(value) is int:
        return float(value)
    if isinstance(type_, type) and type(value) is type_:
        return value
    _mismatch(value, type_, key)


def _construct(record_type, values):
    fields = dataclasses.fields(record_type)
    kwargs = {}
    for f in fields:
        if not f.init:
            continue
        if f.name in values:
            kwargs[f.name] = values[f.name]
        elif (f.default is dataclasses.MISSING and
                f.default_factory is dataclasses.MISSING):
            # absent with no default: the zero value of the field type
            kwargs[f.name] = _zero_value(
                _type_hints(record_type).get(f.name, f.type))
    try:
        record = record_type(**kwargs)
    except TypeError as cause:
        raise JsonLdError(
            'Could not construct record from resource.',
            'jsonld.TypeMismatch', {'type': record_type.__name__},
            cause=cause)
    for f in fields:
        if not f.init and f.name in values:
            setattr(record, f.name, values[f.name])
    return record


def _zero_value(type_):
    if type_ in (typing.Any, object) or _is_optional(type_):
        return None
    if _is_list_type(type_):
        return []
    if dataclasses.is_dataclass(type_):
        return _construct(type_, {})
    if isinstance(type_, type):
        # str, int, float, bool, Type and Node all build an empty value
        try:
            return type_()
        except TypeError:
            return None
    return None


@functools.lru_cache(maxsize=None)
def _type_hints(record_type):
    return typing.get_type_hints(record_type)


def _require_node(value, type_, key):
    if not isinstance(value, Node):
        _mismatch(value, type_, key)
    return value


def _mismatch(value, type_, key):
    raise JsonLdError(
        'Cannot unmarshal %s into %s.' % (
            type(value).__name__, getattr(type_, '__name__', repr(type_))),
        'jsonld.TypeMismatch',
        {'key': key, 'expected': repr(type_), 'actual': type(value).__name__})


def _is_optional(type_):
    return (typing.get_origin(type_) in _UNION_TYPES and
            type(None) in typing.get_args(type_))


def _strip_optional(type_):
    if typing.get_origin(type_) in _UNION_TYPES:
        args = [a for a in typing.get_args(type_) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return type_


def _is_list_type(type_):
    return type_ is list or typing.get_origin(type_) is list
