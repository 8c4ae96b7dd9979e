"""Shared fixtures: an in-file repository and fake oracles."""

import pytest

from shoplist.db import ShoppingListDB
from shoplist.errors import OracleError
from shoplist.models import ProductCandidate
from shoplist.oracles import ProductSearch, StandardizedLine, TextStandardizer


class FakeSearch(ProductSearch):
    """Returns canned candidates per query and records its lifecycle."""

    def __init__(self, catalog=None, error=None):
        self.catalog = catalog or {}
        self.error = error
        self.queries = []
        self.opened = False
        self.closed = False

    async def open(self):
        self.opened = True

    async def close(self):
        self.closed = True

    async def search(self, query, limit=15):
        self.queries.append((query, limit))
        if self.error is not None:
            raise self.error
        return list(self.catalog.get(query, []))[:limit]


class FakeStandardizer(TextStandardizer):
    def __init__(self, mapping=None):
        self.mapping = mapping or {}
        self.calls = []

    async def standardize(self, lines, language="nl"):
        self.calls.append((list(lines), language))
        return [
            StandardizedLine(line=line, name=name, category=category)
            for line, (name, category) in self.mapping.items()
            if line in lines
        ]


def product(name, price, market, distance=0.1):
    return ProductCandidate(name=name, price=price, supermarket_name=market, distance=distance)


CATALOG = {
    "milk": [product("AH milk", 1.20, "AH"), product("Jumbo milk", 0.99, "Jumbo")],
    "eggs": [product("AH eggs", 0.30, "AH"), product("Jumbo eggs", 0.35, "Jumbo")],
}


@pytest.fixture
def repo(tmp_path):
    db = ShoppingListDB(tmp_path / "shoplist.db")
    yield db
    db.close()


@pytest.fixture
def search():
    return FakeSearch(CATALOG)


@pytest.fixture
def rate_limited_search():
    return FakeSearch(error=OracleError("rate limited", status=429))
