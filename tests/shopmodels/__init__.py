"""
Annotated sample classes used by the crudgen test suite.

Generated artifacts for these classes are written to a temporary directory
that the tests append to this package's ``__path__``.
"""
