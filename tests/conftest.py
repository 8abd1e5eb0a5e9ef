from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from cartpricing.domain.model import ItemCatalog  # noqa: TC001
from tests.support.carts import TARIFFS, full_catalog
from tests.support.oracle import FakePricingOracle

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture(autouse=True)
def isolated_data_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    data_dir = tmp_path / "cartpricing-data"
    monkeypatch.setenv("CARTPRICING_DATA_DIR", str(data_dir))
    return data_dir


@pytest.fixture
def oracle() -> FakePricingOracle:
    return FakePricingOracle(TARIFFS)


@pytest.fixture
def catalog() -> ItemCatalog:
    return full_catalog()
