"""Go-to-declaration on top of the symbol index."""

from zynav.navigation.locations import DefinitionLocation
from zynav.navigation.resolver import ResolutionEngine

__all__ = [
    "DefinitionLocation",
    "ResolutionEngine",
]
