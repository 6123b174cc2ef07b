"""
Element locator collaborator contract.

The locator is the visual/AI capability that turns a semantic description
into screen geometry and describes the element at a point. It lives outside
this package; hosts adapt their page agent to this interface.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ..core.models import LocatedElement, Point


class ElementLocator(ABC):
    """Abstract base class for element locators."""

    @abstractmethod
    async def locate(self, description: str, deep_think: bool = False) -> Optional[LocatedElement]:
        """
        Find the element matching a semantic description.

        Args:
            description: Semantic description of the element
            deep_think: Use the expanded, more exploratory search mode

        Returns:
            LocatedElement, or None when nothing matches. May raise on
            transport or internal errors.
        """
        pass

    @abstractmethod
    async def describe(self, center: Point) -> str:
        """
        Produce a semantic description of the element at a point.

        Best-effort: callers must tolerate exceptions.
        """
        pass
