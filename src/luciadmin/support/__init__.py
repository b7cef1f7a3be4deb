"""
Small helpers shared by the conduit, protocol and discovery packages.
"""
