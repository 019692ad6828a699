from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from vhouse_ai.domain.models import Customer, OrderRecord, Product
from vhouse_ai.pipelines.conversation.types import GenerationRequest, GenerationResult


class CustomerRepositoryInterface(ABC):
    """Read contract for the customer store"""

    @abstractmethod
    async def get_by_id(self, customer_id: int) -> Optional[Customer]:
        ...


class CatalogRepositoryInterface(ABC):
    """Read contract for the product catalog"""

    @abstractmethod
    async def list_all(self) -> List[Product]:
        ...


class OrderRepositoryInterface(ABC):
    """Read contract for historical customer orders"""

    @abstractmethod
    async def list_recent_for_customer(
        self, customer_id: int, limit: int = 5
    ) -> List[OrderRecord]:
        ...


class TextGenerationGateway(ABC):
    """Capability boundary in front of the text-generation providers.

    Implementations must never raise from `generate`: timeouts and provider
    errors are reported through `GenerationResult.is_successful`.
    """

    @abstractmethod
    async def generate(self, request: GenerationRequest) -> GenerationResult:
        ...

    @abstractmethod
    def health_status(self) -> Dict[str, Any]:
        ...
