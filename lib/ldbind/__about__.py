# PyLD-style metadata for LDBind
__all__ = [
    '__copyright__', '__license__', '__version__'
]

__copyright__ = 'Copyright (c) 2024 LDBind contributors'
__license__ = 'New BSD license'
__version__ = '0.3.0'
