"""Pytest configuration and fixtures."""

from decimal import Decimal
from pathlib import Path

import pytest

from listingwatch.models import Marketplace, Product
from listingwatch.store import MemoryStore

MERCADO_LIVRE = Marketplace(id="mp-ml", name="Mercado Livre", base_url="https://www.mercadolivre.com.br")
AMAZON = Marketplace(id="mp-amz", name="Amazon", base_url="https://www.amazon.com.br")
HEADPHONES = Product(id="prod-1", name="Fone Bluetooth X1", sku="FBX1", minimum_price=Decimal("199.90"))


@pytest.fixture
def marketplaces() -> list[Marketplace]:
    """Registered marketplaces in display order."""
    return [MERCADO_LIVRE, AMAZON]


@pytest.fixture
def store(marketplaces: list[Marketplace]) -> MemoryStore:
    """Memory store with marketplaces and one product."""
    store = MemoryStore()
    for marketplace in marketplaces:
        store.marketplaces[marketplace.id] = marketplace
    store.products[HEADPHONES.id] = HEADPHONES
    return store


@pytest.fixture
def sample_config(tmp_path: Path) -> Path:
    """Create a sample config file for testing."""
    config_path = tmp_path / "config.yaml"
    config_content = f"""
database:
  url: memory

marketplaces:
  - name: Mercado Livre
    base_url: https://www.mercadolivre.com.br
  - name: Amazon
    base_url: https://www.amazon.com.br

products:
  - name: Fone Bluetooth X1
    sku: FBX1
    minimum_price: 199.90

output:
  base_dir: {tmp_path / "output"}
  logs_dir: logs
"""
    config_path.write_text(config_content)
    return config_path
