"""
Listing queries: filter -> sort -> join-and-project -> paginate.

``Query`` keeps the stages as plain data and renders them into a MongoDB
aggregation pipeline, so listing code never writes pipeline dicts by hand.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from errors import InvalidArgument

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100
# $skip is a signed 64-bit integer
MAX_SKIP = 2 ** 63 - 1


@dataclass
class Join:
    """Inner join of ``local_field`` against ``from_collection._id``, keeping ``fields``."""

    from_collection: str
    local_field: str
    fields: Sequence[str]
    as_field: Optional[str] = None

    @property
    def target(self) -> str:
        return self.as_field or self.local_field


@dataclass
class Query:
    filter: Dict[str, Any] = field(default_factory=dict)
    sort: List[Tuple[str, int]] = field(default_factory=list)
    joins: List[Join] = field(default_factory=list)
    fields: Optional[Sequence[str]] = None

    def where(self, **conditions) -> "Query":
        self.filter.update(conditions)
        return self

    def order_by(self, key: str, direction: int = -1) -> "Query":
        self.sort.append((key, direction))
        return self

    def join(self, from_collection: str, local_field: str, fields: Sequence[str],
             as_field: Optional[str] = None) -> "Query":
        self.joins.append(Join(from_collection, local_field, fields, as_field))
        return self

    def project(self, *fields: str) -> "Query":
        self.fields = fields
        return self

    def pipeline(self) -> List[Dict[str, Any]]:
        """Pipeline without pagination stages."""
        stages: List[Dict[str, Any]] = [{"$match": self.filter}]

        sort = list(self.sort) or [("created_at", -1)]
        if not any(key == "_id" for key, _ in sort):
            sort.append(("_id", sort[-1][1]))
        stages.append({"$sort": dict(sort)})

        for join in self.joins:
            stages.append({
                "$lookup": {
                    "from": join.from_collection,
                    "localField": join.local_field,
                    "foreignField": "_id",
                    "as": join.target,
                }
            })
            # Records whose reference does not resolve are dropped here
            stages.append({"$unwind": "$" + join.target})

        if self.fields is not None or self.joins:
            stages.append({"$project": self._projection()})
        return stages

    def _projection(self) -> Dict[str, int]:
        if self.fields is None:
            raise ValueError("project() is required when joining")
        joined = {join.target for join in self.joins}
        spec: Dict[str, int] = {}
        for name in self.fields or ():
            if name not in joined:
                spec[name] = 1
        for join in self.joins:
            spec[join.target + "._id"] = 1
            for name in join.fields:
                spec[f"{join.target}.{name}"] = 1
        return spec


@dataclass
class Page:
    items: List[Dict[str, Any]]
    total_items: int
    total_pages: int
    current_page: int
    limit: int
    has_next_page: bool
    has_prev_page: bool

    def to_dict(self, label: str = "docs") -> Dict[str, Any]:
        return {
            label: self.items,
            "pagination": {
                "totalItems": self.total_items,
                "totalPages": self.total_pages,
                "currentPage": self.current_page,
                "limit": self.limit,
                "hasNextPage": self.has_next_page,
                "hasPrevPage": self.has_prev_page,
            },
        }


def _to_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def parse_page_params(page: Any = DEFAULT_PAGE, limit: Any = DEFAULT_LIMIT) -> Tuple[int, int]:
    """Validate raw ``page``/``limit`` values, defaulting missing ones."""
    page_number = DEFAULT_PAGE if page is None or page == "" else _to_int(page)
    limit_number = DEFAULT_LIMIT if limit is None or limit == "" else _to_int(limit)

    if page_number is None or page_number < 1:
        raise InvalidArgument("Invalid page number")
    if limit_number is None or limit_number < 1 or limit_number > MAX_LIMIT:
        raise InvalidArgument(f"limit must be between 1 and {MAX_LIMIT}")
    if (page_number - 1) * limit_number > MAX_SKIP:
        raise InvalidArgument("Invalid page number")
    return page_number, limit_number


def sort_direction(sort_type: Optional[str]) -> int:
    """'asc' sorts ascending, anything else descending."""
    return 1 if sort_type == "asc" else -1


def build_page(items: List[Dict[str, Any]], total_items: int, page: int, limit: int) -> Page:
    """Page metadata; an empty result never has a previous page, whatever the page number."""
    total_pages = math.ceil(total_items / limit) if total_items else 0
    return Page(
        items=items,
        total_items=total_items,
        total_pages=total_pages,
        current_page=page,
        limit=limit,
        has_next_page=page < total_pages,
        has_prev_page=page > 1 and total_items > 0,
    )


def paginate(collection, query: Query, page: Any = DEFAULT_PAGE, limit: Any = DEFAULT_LIMIT) -> Page:
    """Run ``query`` against ``collection`` and return one page plus metadata."""
    page_number, limit_number = parse_page_params(page, limit)
    base = query.pipeline()

    counted = list(collection.aggregate(base + [{"$group": {"_id": None, "total": {"$sum": 1}}}]))
    total_items = counted[0]["total"] if counted else 0
    if total_items == 0:
        return build_page([], 0, page_number, limit_number)

    skip = (page_number - 1) * limit_number
    items = list(collection.aggregate(base + [{"$skip": skip}, {"$limit": limit_number}]))
    return build_page(items, total_items, page_number, limit_number)
