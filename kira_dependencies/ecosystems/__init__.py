"""
Package manager backends for kira-dependencies.

Each backend implements :class:`~kira_dependencies.core.interfaces.PackageManager`
and is registered in :mod:`kira_dependencies.core.registry`.
"""
