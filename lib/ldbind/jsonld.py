"""
Python binding of JSON-LD documents to objects

Decoding reads JSON text, resolves every short name through the active
context into absolute IRIs and builds Nodes, which are then bound to
annotated dataclasses. Encoding runs the same steps backwards, compacting
IRIs through the encoder's context.

.. module:: ldbind.jsonld
  :synopsis: JSON-LD decoding and encoding
"""

import json
import logging
import re
from numbers import Integral, Real

from ldbind import binding
from ldbind import iri as iri_resolver
from ldbind.__about__ import (__copyright__, __license__, __version__)
from ldbind.context import (
    Context, compact_iri, expand_iri, expand_property, keyword_alias)
from ldbind.error import JsonLdError
from ldbind.node import RDF_TYPE, Node

__all__ = [
    '__copyright__', '__license__', '__version__',
    'decode', 'encode', 'Decoder', 'Encoder', 'JsonLdError',
    'set_context_fetcher', 'get_context_fetcher', 'context_fetcher',
    'requests_document_loader', 'aiohttp_document_loader',
    'requests_context_fetcher', 'aiohttp_context_fetcher',
    'parse_link_header'
]

logger = logging.getLogger(__name__)

# XSD constants
XSD = 'http://www.w3.org/2001/XMLSchema#'
XSD_ANYURI = XSD + 'anyURI'
XSD_BOOLEAN = XSD + 'boolean'
XSD_DOUBLE = XSD + 'double'
XSD_INTEGER = XSD + 'integer'
XSD_STRING = XSD + 'string'

# JSON-LD link header rel
LINK_HEADER_REL = 'http://www.w3.org/ns/json-ld#context'

# default Accept header for remote contexts
ACCEPT_HEADER = 'application/ld+json, application/json'

# remote contexts are disabled until a fetcher is configured
_default_context_fetcher = None


def decode(input_, target=None, options=None):
    """
    Decodes a JSON-LD document.

    :param input_: JSON text (str or bytes) or already parsed JSON values.
    :param [target]: what to bind the result to: a dataclass or the Node
      class to instantiate, or a dataclass or Node instance to fill in
      place. Without a target the generic value (usually a Node) is
      returned.
    :param [options]: the options to use.
      [context] the initial Context (default: None).
      [fetchContext(url)] the remote context fetcher
        (default: get_context_fetcher()).

    :return: the bound target or the generic value.
    """
    options = options or {}
    decoder = Decoder(
        context=options.get('context'),
        fetch_context=options.get('fetchContext', _default_context_fetcher))
    return decoder.decode(input_, target)


def encode(input_, ctx=None, options=None):
    """
    Encodes a dataclass instance, a Node or a plain value as JSON-LD text.

    :param input_: the value to encode.
    :param [ctx]: the Context to compact with and to emit as @context.
    :param [options]: the options to use.
      [indent] the JSON indentation (default: None).
      [sortKeys] True to sort object keys (default: False).

    :return: the JSON-LD text.
    """
    options = options or {}
    return Encoder(context=ctx).encode(
        input_, indent=options.get('indent'),
        sort_keys=options.get('sortKeys', False))


def set_context_fetcher(fetch_context):
    """
    Sets the default remote context fetcher.

    :param fetch_context(url): the fetcher to use, None to disable remote
      contexts.
    """
    global _default_context_fetcher
    _default_context_fetcher = fetch_context


def get_context_fetcher():
    """
    Gets the default remote context fetcher.

    :return: the default fetcher or None.
    """
    return _default_context_fetcher


def context_fetcher(load_document):
    """
    Creates a remote context fetcher from a document loader.

    The fetched document's @context (or the document itself when it has
    none) is built into a Context whose origin is the URL. Contexts
    referenced by URL from inside a fetched context are not followed.

    :param load_document(url): the document loader.

    :return: the fetcher function.
    """

    def fetch(url):
        """
        Fetches the context at the given URL.

        :param url: the URL to retrieve.

        :return: the Context.
        """
        remote_doc = load_document(url)
        document = remote_doc['document']
        if _is_string(document):
            try:
                document = json.loads(document)
            except ValueError as cause:
                raise JsonLdError(
                    'Could not parse remote context.',
                    'jsonld.ParseError', {'url': url},
                    code='loading remote context failed', cause=cause)
        if not _is_object(document):
            raise JsonLdError(
                'Invalid JSON-LD syntax; remote context must be an object.',
                'jsonld.MalformedContext', {'url': url},
                code='invalid remote context')

        local_ctx = document.get('@context', document)
        ctx = Decoder().parse_context(None, local_ctx)
        return Context(
            terms=dict(ctx.terms), origin=url, **ctx.declared_scalars())

    return fetch


def requests_document_loader(**kwargs):
    import ldbind.documentloader.requests

    return ldbind.documentloader.requests.requests_document_loader(**kwargs)


def aiohttp_document_loader(**kwargs):
    import ldbind.documentloader.aiohttp

    return ldbind.documentloader.aiohttp.aiohttp_document_loader(**kwargs)


def requests_context_fetcher(**kwargs):
    """
    Creates a remote context fetcher using Requests.

    :param **kwargs: passed to requests_document_loader.
    """
    return context_fetcher(requests_document_loader(**kwargs))


def aiohttp_context_fetcher(**kwargs):
    """
    Creates a remote context fetcher using aiohttp.

    :param **kwargs: passed to aiohttp_document_loader.
    """
    return context_fetcher(aiohttp_document_loader(**kwargs))


def parse_link_header(header):
    """
    Parses a link header. The results will be key'd by the value of "rel".

    Link: <http://json-ld.org/contexts/person.jsonld>; \
      rel="http://www.w3.org/ns/json-ld#context"; type="application/ld+json"

    Parses as: {
      'http://www.w3.org/ns/json-ld#context': {
        target: http://json-ld.org/contexts/person.jsonld,
        type: 'application/ld+json'
      }
    }

    If there is more than one "rel" with the same IRI, then entries in the
    resulting map for that "rel" will be lists.

    :param header: the link header to parse.

    :return: the parsed result.
    """
    rval = {}
    # split on unbracketed/unquoted commas
    entries = re.findall(r'(?:<[^>]*?>|"[^"]*?"|[^,])+', header)
    if not entries:
        return rval
    r_link_header = r'\s*<([^>]*?)>\s*(?:;\s*(.*))?'
    for entry in entries:
        match = re.search(r_link_header, entry)
        if not match:
            continue
        target, params = match.groups()
        result = {'target': target}
        r_params = r'(.*?)=(?:(?:"([^"]*?)")|([^"]*?))\s*(?:(?:;\s*)|$)'
        for name, quoted, bare in re.findall(r_params, params or ''):
            result[name] = quoted or bare
        rel = result.get('rel', '')
        if isinstance(rval.get(rel), list):
            rval[rel].append(result)
        elif rel in rval:
            rval[rel] = [rval[rel], result]
        else:
            rval[rel] = result
    return rval


class Decoder(object):
    """
    A Decoder turns JSON-LD values into Nodes and binds them to objects.

    :param [context]: the initial Context; also the context dataclass field
      keys are resolved against.
    :param [fetch_context(url)]: the remote context fetcher; None disables
      remote contexts.
    """

    def __init__(self, context=None, fetch_context=None):
        self.context = context
        self.fetch_context = fetch_context

    def decode(self, input_, target=None):
        """
        Decodes JSON-LD and binds it to a target.

        :param input_: JSON text (str or bytes) or parsed JSON values.
        :param [target]: the target to bind to (see ``decode``).

        :return: the bound target or the generic value.
        """
        if isinstance(input_, (bytes, bytearray)):
            input_ = input_.decode('utf-8')
        if _is_string(input_):
            try:
                input_ = json.loads(input_)
            except ValueError as cause:
                raise JsonLdError(
                    'Could not parse JSON-LD text.',
                    'jsonld.ParseError', code='loading document failed',
                    cause=cause)

        value = self.parse(input_)
        if target is None:
            return value
        return self.unmarshal(value, target)

    def parse(self, input_):
        """
        Parses a JSON value under the initial context.

        :param input_: the parsed JSON value.

        :return: the generic value, usually a Node.
        """
        return self.parse_value(self.context, input_)

    def parse_value(self, active_ctx, value, type_hint=None):
        """
        Converts one JSON value according to a type hint.

        :param active_ctx: the current active context.
        :param value: the JSON value, possibly a value object.
        :param [type_hint]: '@id', a datatype IRI or None; when None a value
          object's own @type is used.

        :return: the typed value.
        """
        element = None
        if _is_object(value) and '@value' in value:
            if '@context' in value:
                active_ctx = self.parse_context(active_ctx, value['@context'])
            if type_hint is None:
                type_ = value.get('@type')
                if _is_array(type_):
                    type_ = type_[0] if type_ else None
                if _is_string(type_):
                    type_hint = (
                        type_ if type_ == '@id'
                        else expand_iri(active_ctx, type_))
            value = value['@value']
        elif _is_object(value):
            element = value

        if type_hint == '@id':
            if element is not None:
                return self.parse_node(active_ctx, element)
            if _is_string(value):
                return Node(self._expand_id(active_ctx, value))
            raise _coercion_error('an ID', 'jsonld.ExpectedID', value)
        elif type_hint == XSD_STRING:
            if _is_string(value):
                return value
            raise _coercion_error('a string', 'jsonld.ExpectedString', value)
        elif type_hint == XSD_INTEGER:
            if _is_integer(value) and not _is_bool(value):
                return int(value)
            if _is_double(value) and value.is_integer():
                return int(value)
            if _is_string(value):
                try:
                    return int(value.strip())
                except ValueError:
                    pass
            raise _coercion_error(
                'an integer', 'jsonld.ExpectedInteger', value)
        elif type_hint == XSD_BOOLEAN:
            if _is_bool(value):
                return value
            raise _coercion_error('a boolean', 'jsonld.ExpectedBoolean', value)
        elif type_hint == XSD_DOUBLE:
            numeric = (
                (_is_integer(value) or _is_double(value)) and
                not _is_bool(value))
            if numeric or (_is_string(value) and _is_numeric(value)):
                try:
                    return float(value)
                except OverflowError:
                    pass
            raise _coercion_error('a double', 'jsonld.ExpectedDouble', value)
        elif type_hint == XSD_ANYURI:
            if _is_string(value):
                return expand_iri(active_ctx, value)
            raise _coercion_error('a URI', 'jsonld.ExpectedURI', value)

        # no type info
        if element is not None:
            return self.parse_node(active_ctx, element)
        if _is_array(value):
            return [self.parse_value(active_ctx, v) for v in value]
        return value

    def parse_node(self, active_ctx, element):
        """
        Parses a JSON object into a Node. An embedded @context applies to
        this object and everything below it only.

        :param active_ctx: the current active context.
        :param element: the JSON object.

        :return: the Node.
        """
        if '@context' in element:
            active_ctx = self.parse_context(active_ctx, element['@context'])

        node = Node()
        for key, value in element.items():
            if key == '@context':
                continue
            if key.startswith('@'):
                property, type_hint = key, None
            else:
                property, type_hint = expand_property(active_ctx, key)

            if property == '@id':
                if not _is_string(value):
                    raise _coercion_error(
                        'an ID', 'jsonld.ExpectedID', value, key)
                node.id = self._expand_id(active_ctx, value)
                continue
            if property == '@type':
                property, type_hint = RDF_TYPE, XSD_ANYURI
            elif property.startswith('@'):
                continue

            values = value if _is_array(value) else [value]
            for v in values:
                # null means no value
                if v is None:
                    continue
                node.props.add(
                    property, self.parse_value(active_ctx, v, type_hint))

        return node

    def parse_context(self, active_ctx, local_ctx):
        """
        Processes a @context value on top of the active context.

        :param active_ctx: the current active context (may be None).
        :param local_ctx: an object, a URL or a list of those.

        :return: the new active context.
        """
        if _is_array(local_ctx):
            for ctx in local_ctx:
                active_ctx = self.parse_context(active_ctx, ctx)
            return active_ctx
        if _is_object(local_ctx):
            return Context.parse(local_ctx, parent=active_ctx)
        if _is_string(local_ctx):
            remote = self._fetch_context(local_ctx)
            if active_ctx is None:
                return remote
            return active_ctx.merge(remote)
        raise JsonLdError(
            'Invalid JSON-LD syntax; @context must be an object, a string '
            'or an array of those.',
            'jsonld.MalformedContext', {'context': local_ctx},
            code='invalid local context')

    def unmarshal(self, value, target):
        """
        Binds a generic value to a target (see ``binding.unmarshal``).
        """
        return binding.unmarshal(value, target, self.context)

    def _fetch_context(self, url):
        if self.fetch_context is None:
            raise JsonLdError(
                'Fetching remote contexts is disabled.',
                'jsonld.RemoteContextDisabled', {'url': url},
                code='loading remote context failed')
        logger.debug('fetching remote context %s', url)
        remote = self.fetch_context(url)
        if _is_object(remote):
            remote = Context.parse(remote, origin=url)
        if not isinstance(remote, Context):
            raise JsonLdError(
                'Context fetcher did not return a context.',
                'jsonld.MalformedContext',
                {'url': url, 'actual': type(remote).__name__},
                code='invalid remote context')
        return remote

    def _expand_id(self, active_ctx, value):
        if (':' not in value and active_ctx is not None and
                active_ctx.base):
            try:
                return iri_resolver.resolve(value, active_ctx.base)
            except ValueError as cause:
                raise JsonLdError(
                    'Invalid JSON-LD syntax; @base must be an absolute IRI.',
                    'jsonld.MalformedContext',
                    {'base': active_ctx.base, 'value': value},
                    code='invalid base IRI', cause=cause)
        if ':' in value:
            # prefix expansion only, ids never take the vocabulary
            return expand_iri(active_ctx, value)
        return value


class Encoder(object):
    """
    An Encoder turns objects and Nodes into JSON-LD values.

    :param [context]: the Context used to compact IRIs; emitted as the
      top-level @context.
    """

    def __init__(self, context=None):
        self.context = context

    def encode(self, input_, indent=None, sort_keys=False):
        """
        Encodes a value as JSON-LD text.

        :param input_: a dataclass instance, a Node or a plain value.
        :param [indent]: the JSON indentation.
        :param [sort_keys]: True to sort object keys.

        :return: the JSON text.
        """
        return json.dumps(
            self.format(input_), indent=indent, sort_keys=sort_keys)

    def format(self, input_):
        """
        Formats a value as generic JSON values, adding the @context.

        :param input_: a dataclass instance, a Node or a plain value.

        :return: the JSON value.
        """
        formatted = self.format_value(self.context, self.marshal(input_))

        if self.context is not None and not self.context.is_empty():
            local_ctx = self.format_context(self.context)
            if _is_object(formatted):
                rval = {'@context': local_ctx}
                rval.update(formatted)
                formatted = rval
            else:
                formatted = {'@context': local_ctx, '@value': formatted}

        return formatted

    def marshal(self, value):
        """
        Converts dataclass instances to Nodes (see ``binding.marshal``).
        """
        return binding.marshal(value, self.context)

    def format_value(self, active_ctx, value):
        """
        Formats one value.

        :param active_ctx: the current active context.
        :param value: a Node, a list or a literal.

        :return: the JSON value.
        """
        if isinstance(value, Node):
            return self.format_node(active_ctx, value)
        if _is_array(value):
            return [self.format_value(active_ctx, v) for v in value]
        return value

    def format_node(self, active_ctx, node):
        """
        Formats a Node as a JSON object with compacted keys.

        :param active_ctx: the current active context.
        :param node: the Node.

        :return: the JSON object.
        """
        rval = {}

        if node.id:
            rval[keyword_alias(active_ctx, '@id')] = self._compact_id(
                active_ctx, node.id)

        for property, values in node.props.items():
            if property == RDF_TYPE:
                key = keyword_alias(active_ctx, '@type')
                formatted = [
                    compact_iri(active_ctx, v)[0] if _is_string(v)
                    else self.format_value(active_ctx, v)
                    for v in values]
            else:
                key, term = compact_iri(active_ctx, property)
                formatted = [
                    self._format_property_value(active_ctx, term, v)
                    for v in values]

            if not formatted:
                continue
            rval[key] = formatted[0] if len(formatted) == 1 else formatted

        return rval

    def format_context(self, ctx):
        """
        Formats a Context as a @context value: its origin URL when it was
        loaded from one, otherwise an inline object.

        :param ctx: the Context.

        :return: the @context value.
        """
        if ctx is None:
            return None
        if ctx.origin:
            return ctx.origin

        rval = {}
        if ctx.language:
            rval['@lang'] = ctx.language
        if ctx.base:
            rval['@base'] = ctx.base
        if ctx.vocab:
            rval['@vocab'] = ctx.vocab

        for name, term in ctx.terms.items():
            if term.type is None:
                rval[name] = term.iri
            else:
                definition = {}
                if term.iri:
                    definition['@id'] = term.iri
                definition['@type'] = term.type
                rval[name] = definition

        return rval

    def _format_property_value(self, active_ctx, term, value):
        if term is not None and isinstance(value, Node):
            # inverse of the bare-string shorthand for @id terms
            if term.type == '@id' and value.id and not value.props:
                return self._compact_id(active_ctx, value.id)
        elif term is not None and term.type == XSD_ANYURI:
            if _is_string(value):
                return compact_iri(active_ctx, value)[0]
        return self.format_value(active_ctx, value)

    def _compact_id(self, active_ctx, value):
        if active_ctx is None or not active_ctx.base:
            return value
        try:
            relative = iri_resolver.relativize(value, active_ctx.base)
        except ValueError as cause:
            raise JsonLdError(
                'Invalid JSON-LD syntax; @base must be an absolute IRI.',
                'jsonld.MalformedContext',
                {'base': active_ctx.base, 'value': value},
                code='invalid base IRI', cause=cause)
        # a relative form with a colon would read back as an absolute IRI
        if ':' in relative:
            return value
        return relative


def _coercion_error(expected, type_, value, key=None):
    details = {'expected': expected, 'actual': type(value).__name__,
               'value': value}
    if key is not None:
        details['key'] = key
    return JsonLdError(
        'Invalid JSON-LD value; expected %s.' % expected, type_, details,
        code='invalid typed value')


def _is_object(v):
    """
    Returns True if the given value is an Object.

    :param v: the value to check.

    :return: True if the value is an Object, False if not.
    """
    return isinstance(v, dict)


def _is_array(v):
    """
    Returns True if the given value is an Array.

    :param v: the value to check.

    :return: True if the value is an Array, False if not.
    """
    return isinstance(v, list)


def _is_string(v):
    """
    Returns True if the given value is a String.

    :param v: the value to check.

    :return: True if the value is a String, False if not.
    """
    return isinstance(v, str)


def _is_bool(v):
    """
    Returns True if the given value is a Boolean.

    :param v: the value to check.

    :return: True if the value is a Boolean, False if not.
    """
    return isinstance(v, bool)


def _is_integer(v):
    """
    Returns True if the given value is an Integer.

    :param v: the value to check.

    :return: True if the value is an Integer, False if not.
    """
    return isinstance(v, Integral)


def _is_double(v):
    """
    Returns True if the given value is a Double.

    :param v: the value to check.

    :return: True if the value is a Double, False if not.
    """
    return not isinstance(v, Integral) and isinstance(v, Real)


def _is_numeric(v):
    """
    Returns True if the given value is numeric.

    :param v: the value to check.

    :return: True if the value is numeric, False if not.
    """
    try:
        float(v)
        return True
    except ValueError:
        return False
