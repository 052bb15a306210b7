"""Resource registry."""

from registry.registry import AddPolicy, ResourceRegistry, name_matches

__all__ = ["AddPolicy", "ResourceRegistry", "name_matches"]
