import importlib
from typing import Any, Callable

from llm import PROVIDERS


def lazy_external_import(module_name: str, class_name: str) -> Callable[..., Any]:
    """Return a factory that imports ``module_name`` only when first called."""

    def build(*args: Any, **kwargs: Any):
        cls = getattr(importlib.import_module(module_name), class_name)
        return cls(*args, **kwargs)

    return build


def get_provider_class(provider_name: str) -> Callable[..., Any]:
    try:
        import_path = PROVIDERS[provider_name]
    except KeyError:
        raise ValueError(
            f"unknown completion provider {provider_name!r}; expected one of {sorted(PROVIDERS)}"
        ) from None
    return lazy_external_import(import_path, provider_name)
