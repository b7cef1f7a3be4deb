"""
The conduit package provides an abstraction of a bi-directional stream to an instrument.
Concrete implementations are TCP sockets and serial ports.

A conduit is what an Endpoint hands back when it is opened. The controller reads lines
from conduit.input and writes lines to conduit.output.
"""
