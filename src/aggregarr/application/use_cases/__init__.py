from .aggregated_search import AggregatedSearchUseCase
from .list_indexers import ListIndexersUseCase

__all__ = ["AggregatedSearchUseCase", "ListIndexersUseCase"]
