"""
pagination.py — Offset pagination shared by the list views.

Pages are 1-indexed. `total` is counted under the same filters as the page,
so the footer ("Showing 11 to 20 of 37") is always consistent with the rows.
"""

from dataclasses import dataclass


@dataclass
class Page:
    items: list
    total: int
    page: int
    per_page: int

    @property
    def pages(self) -> int:
        return -(-self.total // self.per_page) if self.per_page else 0

    @property
    def first_index(self) -> int:
        """1-based index of the first row on this page (0 when empty)."""
        return (self.page - 1) * self.per_page + 1 if self.items else 0

    @property
    def last_index(self) -> int:
        return (self.page - 1) * self.per_page + len(self.items) if self.items else 0

    def meta(self) -> dict:
        return {
            "total":    self.total,
            "page":     self.page,
            "per_page": self.per_page,
            "pages":    self.pages,
            "from":     self.first_index,
            "to":       self.last_index,
        }


def parse_page(raw) -> int:
    try:
        return max(1, int(raw))
    except (TypeError, ValueError):
        return 1


def paginate(query, page, per_page: int = 10) -> Page:
    """Apply offset/limit to an ordered query. Past the last page → no rows."""
    page = parse_page(page)
    total = query.order_by(None).count()
    offset = (page - 1) * per_page
    if offset >= total:
        # also keeps absurd page numbers out of the OFFSET clause
        return Page(items=[], total=total, page=page, per_page=per_page)
    items = query.offset(offset).limit(per_page).all()
    return Page(items=items, total=total, page=page, per_page=per_page)
