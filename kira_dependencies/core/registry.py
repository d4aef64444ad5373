"""Package manager registry.

Maps ``PACKAGE_MANAGER`` identifiers to :class:`PackageManager` factories.
The ``pip`` backend is built in; other backends are added with
:func:`register_package_manager`.
"""

from __future__ import annotations

from typing import Callable, Dict, List

from kira_dependencies.core.interfaces import PackageManager
from kira_dependencies.exceptions import UnsupportedPackageManagerError
from kira_dependencies.utils.logger import get_logger

logger = get_logger("registry")

PackageManagerFactory = Callable[[], PackageManager]


def _pip_factory() -> PackageManager:
    from kira_dependencies.ecosystems.pip import PipPackageManager

    return PipPackageManager()


_REGISTRY: Dict[str, PackageManagerFactory] = {
    "pip": _pip_factory,
}


def register_package_manager(name: str, factory: PackageManagerFactory) -> None:
    """Register (or replace) the backend factory for ``name``."""
    if name in _REGISTRY:
        logger.debug("Replacing package manager backend for %s", name)
    _REGISTRY[name] = factory


def unregister_package_manager(name: str) -> None:
    _REGISTRY.pop(name, None)


def supported_package_managers() -> List[str]:
    return sorted(_REGISTRY)


def for_package_manager(name: str) -> PackageManager:
    """Instantiate the backend registered for ``name``.

    Raises:
        UnsupportedPackageManagerError: No backend is registered.
    """
    try:
        factory = _REGISTRY[name]
    except KeyError:
        raise UnsupportedPackageManagerError(name, _REGISTRY) from None
    return factory()
