"""
Term scopes and IRI expansion/compaction.

A Context is one scope of term definitions. Child scopes overlay their own
definitions on the parent's table (they do not copy it) and are never
modified once built, so a Context may be shared by any number of nodes and
threads.

.. module:: ldbind.context
  :synopsis: JSON-LD contexts, IRI expansion and compaction
"""

import logging
from collections import ChainMap, namedtuple
from types import MappingProxyType

from ldbind.error import JsonLdError

__all__ = [
    'Context', 'TermDefinition', 'NULL_TERM',
    'expand_iri', 'compact_iri', 'expand_property', 'keyword_alias', 'KEYWORDS'
]

logger = logging.getLogger(__name__)

# JSON-LD keywords understood by this implementation
KEYWORDS = [
    '@base',
    '@context',
    '@id',
    '@lang',
    '@language',
    '@type',
    '@value',
    '@vocab']

# iri: the term's IRI (None when unset)
# type: None, '@id' or a datatype IRI
TermDefinition = namedtuple(
    'TermDefinition', ['iri', 'type'], defaults=[None, None])

# a term mapped to null: shadows inherited definitions, never expands
NULL_TERM = TermDefinition(None, None)


class Context(object):
    """
    A scope of term definitions with default language, base and vocabulary.

    :param [terms]: a mapping of short name to TermDefinition, IRI string,
      None (explicit null) or a JSON-LD term object.
    :param [vocab]: the vocabulary IRI (inherited when None).
    :param [base]: the base IRI (inherited when None).
    :param [language]: the default language (inherited when None).
    :param [origin]: the URL this scope was loaded from.
    :param [parent]: the enclosing scope.
    """

    __slots__ = (
        '_origin', '_language', '_base', '_vocab', '_parent', '_chain',
        '_terms', '_declared')

    def __init__(
            self, terms=None, vocab=None, base=None, language=None,
            origin=None, parent=None):
        self._parent = parent
        self._origin = origin or ''
        self._language = _inherit(language, parent, 'language')
        self._base = _inherit(base, parent, 'base')
        self._vocab = _inherit(vocab, parent, 'vocab')
        self._declared = dict(parent._declared) if parent is not None else {}
        for attr, value in (
                ('language', language), ('base', base), ('vocab', vocab)):
            if value is not None:
                self._declared[attr] = value

        own = {}
        for name, value in (terms or {}).items():
            own[name] = _create_term_definition(name, value)

        if parent is not None:
            self._chain = parent._chain.new_child(own)
        else:
            self._chain = ChainMap(own)

        # compact IRIs in definitions resolve against this scope as a whole,
        # so prefixes may be declared after the terms that use them
        for name, term in list(own.items()):
            own[name] = TermDefinition(
                _expand_definition_iri(self._chain, name, term.iri),
                _expand_definition_iri(self._chain, name, term.type))

        self._terms = MappingProxyType(self._chain)

    @classmethod
    def parse(cls, local_ctx, parent=None, origin=None):
        """
        Builds a Context from a JSON-LD context object.

        :param local_ctx: the context object (a dict).
        :param [parent]: the scope to inherit from.
        :param [origin]: the URL the object was loaded from.

        :return: the new Context.
        """
        if not isinstance(local_ctx, dict):
            raise JsonLdError(
                'Invalid JSON-LD syntax; @context must be an object.',
                'jsonld.MalformedContext', {'context': local_ctx},
                code='invalid local context')

        scalars = {}
        for keyword, attr in (
                ('@lang', 'language'), ('@language', 'language'),
                ('@base', 'base'), ('@vocab', 'vocab')):
            if keyword not in local_ctx:
                continue
            value = local_ctx[keyword]
            if value is None:
                # null clears the inherited value
                value = ''
            elif not isinstance(value, str):
                raise JsonLdError(
                    'Invalid JSON-LD syntax; "%s" value must be a string '
                    'or null.' % keyword,
                    'jsonld.MalformedContext',
                    {'key': keyword, 'value': value},
                    code='invalid local context')
            scalars[attr] = value

        terms = {}
        for name, value in local_ctx.items():
            if name.startswith('@'):
                continue
            terms[name] = value

        logger.debug(
            'building context with %d term(s) on top of %r', len(terms),
            parent)
        return cls(terms=terms, parent=parent, origin=origin, **scalars)

    def extend(self, local_ctx):
        """
        Creates a child scope from a JSON-LD context object.

        :param local_ctx: the context object.

        :return: the child Context.
        """
        return Context.parse(local_ctx, parent=self)

    def merge(self, other):
        """
        Creates a child scope that applies every definition of another
        Context on top of this one.

        :param other: the Context to apply.

        :return: the child Context.
        """
        return Context(
            terms=dict(other.terms), parent=self, **other.declared_scalars())

    @property
    def origin(self):
        return self._origin

    @property
    def language(self):
        return self._language

    @property
    def base(self):
        return self._base

    @property
    def vocab(self):
        return self._vocab

    @property
    def parent(self):
        return self._parent

    @property
    def terms(self):
        """A read-only view of every visible term definition."""
        return self._terms

    def declared_scalars(self):
        """
        Returns the vocab, base and language values set explicitly in this
        scope or its parents, keyed by attribute name. A value cleared with
        null is present as ''.
        """
        return dict(self._declared)

    def is_empty(self):
        """
        Returns True if this scope defines nothing worth serializing.
        """
        return not (
            self._origin or self._language or self._base or self._vocab or
            len(self._terms))

    def __repr__(self):
        if self._origin:
            return '<Context %s>' % self._origin
        return '<Context vocab=%r terms=%d>' % (self._vocab, len(self._terms))


def _inherit(value, parent, attr):
    if value is not None:
        return value
    if parent is not None:
        return getattr(parent, attr)
    return ''


def _create_term_definition(name, value):
    """
    Creates a term definition from a programmatic or JSON-LD value.

    :param name: the term being defined.
    :param value: a TermDefinition, an IRI string, None or a term object.

    :return: the TermDefinition.
    """
    if isinstance(value, TermDefinition):
        return value
    if value is None:
        return NULL_TERM
    if isinstance(value, str):
        return TermDefinition(value, None)
    if isinstance(value, dict):
        iri = value.get('@id')
        type_ = value.get('@type')
        if iri is not None and not isinstance(iri, str):
            raise JsonLdError(
                'Invalid JSON-LD syntax; a term definition must have an '
                '"@id" string.',
                'jsonld.MalformedContextTerm', {'term': name, 'value': value},
                code='invalid IRI mapping')
        if type_ is not None and not isinstance(type_, str):
            raise JsonLdError(
                'Invalid JSON-LD syntax; a term definition must have a '
                '"@type" string.',
                'jsonld.MalformedContextTerm', {'term': name, 'value': value},
                code='invalid type mapping')
        return TermDefinition(iri or None, type_ or None)
    raise JsonLdError(
        'Invalid JSON-LD syntax; a term definition must be a string, an '
        'object or null.',
        'jsonld.MalformedContextTerm', {'term': name, 'value': value},
        code='invalid term definition')


def _expand_definition_iri(terms, name, value):
    # only prefixed names are rewritten; keywords and bare names stay
    if not value or value.startswith('@') or ':' not in value:
        return value
    prefix, suffix = value.split(':', 1)
    if prefix == name or suffix.startswith('//'):
        return value
    mapping = terms.get(prefix)
    if mapping and mapping.iri and not mapping.iri.startswith('@'):
        return mapping.iri + suffix
    return value


def expand_iri(active_ctx, value):
    """
    Expands a term, a prefixed name or a vocabulary-relative name to an
    absolute IRI.

    :param active_ctx: the current active context (None for no context).
    :param value: the string value to expand.

    :return: the expanded value.
    """
    if active_ctx is None:
        return value

    terms = active_ctx.terms

    # split value into prefix:suffix
    if ':' in value:
        prefix, suffix = value.split(':', 1)
        mapping = terms.get(prefix)
        if mapping and mapping.iri:
            return mapping.iri + suffix
        # already absolute IRI
        return value

    # an exact term wins outright
    mapping = terms.get(value)
    if mapping and mapping.iri:
        return mapping.iri

    # prepend vocab
    return active_ctx.vocab + value


def compact_iri(active_ctx, iri):
    """
    Compacts an absolute IRI to the best short name in a context.

    Preference: a term with that exact IRI, then a prefixed name using the
    longest matching term IRI, then a vocabulary-relative name. Terms are
    visited in the context's iteration order, so the result is stable for a
    given Context.

    :param active_ctx: the current active context (None for no context).
    :param iri: the IRI to compact.

    :return: a (short name, TermDefinition or None) tuple.
    """
    if active_ctx is None:
        return iri, None

    terms = active_ctx.terms
    best = None
    for name, term in terms.items():
        if not term.iri or term.iri.startswith('@'):
            continue
        if term.iri == iri:
            return name, term
        if ':' in name or not iri.startswith(term.iri):
            continue
        if best is not None and len(term.iri) <= len(best[1].iri):
            continue
        compacted = name + ':' + iri[len(term.iri):]
        # the compound name may be declared in its own right, and then only
        # stands for this IRI if its definition agrees
        declared = terms.get(compacted)
        if declared is not None and declared.iri != iri and (
                declared.iri is not None or declared.type is None):
            continue
        best = (compacted, term, declared)

    if best is not None:
        return best[0], best[2]

    vocab = active_ctx.vocab
    if vocab and iri.startswith(vocab):
        suffix = iri[len(vocab):]
        if suffix and ':' not in suffix and suffix not in terms:
            return suffix, None

    return iri, None


def expand_property(active_ctx, key):
    """
    Resolves a property key to the IRI it is stored under and the coercion
    declared for it.

    :param active_ctx: the current active context (None for no context).
    :param key: the key as written in the document.

    :return: an (IRI, type hint or None) tuple.
    """
    if active_ctx is None:
        return key, None

    term = active_ctx.terms.get(key)
    if term is None:
        return expand_iri(active_ctx, key), None
    if term.iri:
        if term.iri.startswith('@'):
            # keyword alias
            return term.iri, None
        return expand_iri(active_ctx, term.iri), term.type
    if term.type is None:
        # explicit null: keep the key as written
        return key, None
    return expand_iri(active_ctx, key), term.type


def keyword_alias(active_ctx, keyword):
    """
    Gets the term aliasing a keyword in a context.

    :param active_ctx: the current active context (None for no context).
    :param keyword: the keyword, e.g. '@type'.

    :return: the alias or the keyword itself.
    """
    if active_ctx is not None:
        for name, term in active_ctx.terms.items():
            if term.iri == keyword:
                return name
    return keyword
