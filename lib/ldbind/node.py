"""
Schema-free resource representation.

.. module:: ldbind.node
  :synopsis: Nodes, their property maps and type witnesses
"""

from collections import namedtuple

# RDF constants
RDF = 'http://www.w3.org/1999/02/22-rdf-syntax-ns#'
RDF_TYPE = RDF + 'type'

# the value held by a record's type-witness field
Type = namedtuple('Type', ['uri'], defaults=[''])


class Props(dict):
    """
    An insertion-ordered, multi-valued property map keyed by absolute IRI.
    Every entry is a list, a single value is a list of one.
    """

    def add(self, property, value):
        """
        Appends a value to a property.

        :param property: the property IRI.
        :param value: the value to append.
        """
        self.setdefault(property, []).append(value)

    def set(self, property, value):
        """
        Replaces every value of a property with a single value.

        :param property: the property IRI.
        :param value: the new value.
        """
        self[property] = [value]

    def first(self, property, default=None):
        """
        Gets the first value of a property.

        :param property: the property IRI.
        :param [default]: returned when the property has no values.

        :return: the first value or the default.
        """
        values = self.get(property)
        if not values:
            return default
        return values[0]

    @property
    def types(self):
        """The resource types (string values of rdf:type)."""
        return [t for t in self.get(RDF_TYPE, []) if isinstance(t, str)]


class Node(object):
    """
    A resource: an identifier (empty for an anonymous node) plus its
    properties.
    """

    def __init__(self, id='', props=None):
        self.id = id
        if props is None:
            props = Props()
        elif not isinstance(props, Props):
            props = Props(props)
        self.props = props

    @property
    def type(self):
        """The first resource type or an empty string."""
        types = self.props.types
        return types[0] if types else ''

    def __eq__(self, other):
        if not isinstance(other, Node):
            return NotImplemented
        return self.id == other.id and self.props == other.props

    def __ne__(self, other):
        rval = self.__eq__(other)
        if rval is NotImplemented:
            return rval
        return not rval

    __hash__ = None

    def __repr__(self):
        return 'Node(id=%r, props=%r)' % (self.id, dict(self.props))
