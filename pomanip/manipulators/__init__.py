"""Built-in manipulators.

Each module here defines ``MANIPULATOR_NAME`` and a ``pomanip_manipulator``
factory and is picked up by :func:`pomanip.pluginsystem.discover_manipulators`.

@QK
"""
