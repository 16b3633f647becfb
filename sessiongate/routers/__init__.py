import importlib
import pkgutil
from typing import List

from fastapi import APIRouter, FastAPI


def register_routers(app: FastAPI) -> List[str]:
    """Mount the ``router`` of every module in this package; returns the module names."""
    package = importlib.import_module(__name__)
    mounted = []

    for _, module_name, is_pkg in pkgutil.iter_modules(package.__path__):
        if is_pkg:
            continue

        module = importlib.import_module(f"{__name__}.{module_name}")
        router = getattr(module, "router", None)
        if not isinstance(router, APIRouter):
            continue

        app.include_router(router)
        mounted.append(module_name)

    return sorted(mounted)
