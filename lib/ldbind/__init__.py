""" The LDBind module binds JSON-LD documents to Python objects. """
from . import jsonld
from .context import Context, TermDefinition
from .node import Node, Props, Type

__all__ = ['jsonld', 'Context', 'TermDefinition', 'Node', 'Props', 'Type']
