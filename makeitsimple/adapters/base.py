from abc import ABC, abstractmethod
from typing import Optional, Dict, Any

class BaseModelAdapter(ABC):
    """
    Abstract base class for all LLM providers.
    Enforces a common interface for generation.
    """

    name: str = "base"

    @abstractmethod
    async def generate(self, prompt: str, system_prompt: Optional[str] = None, model: Optional[str] = None, **kwargs) -> Dict[str, Any]:
        """
        Generates text from the provider.

        Args:
            prompt: User input
            system_prompt: Optional system instruction
            model: Optional model override
            **kwargs: Extra model params

        Returns:
            Dict containing:
                - response: str
                - model: str
                - provider: str
                - tokens_used: int

        Raises whatever the underlying client raises; callers run the
        exception through `makeitsimple.errors.classify_error`.
        """
        pass

    async def aclose(self) -> None:
        """Release the shared client, if any."""
        return None
