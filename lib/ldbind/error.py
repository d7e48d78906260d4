import sys
import traceback


class JsonLdError(Exception):
    """
    Base class for JSON-LD errors.

    The ``type`` attribute names the error kind, e.g.
    ``'jsonld.ExpectedInteger'``; ``details`` holds the offending key,
    value and the expected/actual types where they are known.
    """

    def __init__(self, message, type_, details=None, code=None, cause=None):
        Exception.__init__(self, message)
        self.type = type_
        self.details = details
        self.code = code
        self.cause = cause
        self.causeTrace = traceback.extract_tb(*sys.exc_info()[2:])

    def __str__(self):
        rval = str(self.args[0]) if self.args else ''
        rval += '\nType: ' + self.type
        if self.code:
            rval += '\nCode: ' + self.code
        if self.details:
            rval += '\nDetails: ' + repr(self.details)
        if self.cause:
            rval += '\nCause: ' + str(self.cause)
            rval += ''.join(traceback.format_list(self.causeTrace))
        return rval
