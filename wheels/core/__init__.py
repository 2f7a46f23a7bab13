"""Core utilities and shared application primitives.

Modules in this package hold configuration, the error types, response
helpers and middleware shared by the controller and the model layer.
"""
