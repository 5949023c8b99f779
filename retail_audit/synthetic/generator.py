from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
import math
import random
from typing import List, Optional, Sequence

from retail_audit.foundation.schema import (
    Customer,
    Invoice,
    Product,
    RetailDataset,
)

DEFAULT_COUNTRIES = (
    "United Kingdom",
    "Germany",
    "France",
    "EIRE",
    "Spain",
    "Netherlands",
    "Australia",
)

_PRODUCT_WORDS = (
    "LANTERN",
    "MUG",
    "CANDLE",
    "BUNTING",
    "TEA SET",
    "DOORMAT",
    "CLOCK",
    "HEART",
    "BAG",
    "COASTER",
)


@dataclass(frozen=True)
class SyntheticConfig:
    """Knobs for :func:`generate_dataset`.

    Attributes
    ----------
    countries: Countries customers are drawn from.
    missing_country_rate: Share of customers with no country.
    inactive_customer_rate: Share of customers that never place an invoice.
    orphan_invoice_rate: Share of invoices with no customer.
    empty_invoice_rate: Share of invoices without any lines.
    missing_description_rate: Share of products with no description.
    shared_description_rate: Share of products reusing an earlier description.
    return_rate: Share of lines recorded as returns (negative quantity).
    repeat_purchase_rate: Chance a line buys a product already on the invoice.
    max_lines_per_invoice: Upper bound on purchases per invoice.
    mean_unit_price: Average product price.
    price_variability: Coefficient in (0, 1] controlling price variance.
    quantity_mean: Average quantity per purchase.
    """

    countries: Sequence[str] = DEFAULT_COUNTRIES
    missing_country_rate: float = 0.05
    inactive_customer_rate: float = 0.1
    orphan_invoice_rate: float = 0.05
    empty_invoice_rate: float = 0.05
    missing_description_rate: float = 0.05
    shared_description_rate: float = 0.1
    return_rate: float = 0.03
    repeat_purchase_rate: float = 0.15
    max_lines_per_invoice: int = 5
    mean_unit_price: float = 4.0
    price_variability: float = 0.6
    quantity_mean: float = 6.0

    def __post_init__(self) -> None:
        rates = {
            "missing_country_rate": self.missing_country_rate,
            "inactive_customer_rate": self.inactive_customer_rate,
            "orphan_invoice_rate": self.orphan_invoice_rate,
            "empty_invoice_rate": self.empty_invoice_rate,
            "missing_description_rate": self.missing_description_rate,
            "shared_description_rate": self.shared_description_rate,
            "return_rate": self.return_rate,
            "repeat_purchase_rate": self.repeat_purchase_rate,
        }
        for name, value in rates.items():
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {value}")
        if not self.countries:
            raise ValueError("countries must not be empty")
        if self.max_lines_per_invoice < 1:
            raise ValueError("max_lines_per_invoice must be >= 1")


def _sample_price(rng: random.Random, mean: float, variability: float) -> Decimal:
    variability = min(max(variability, 0.01), 1.0)
    # Log-normal-ish by exponentiating a normal draw for positivity
    sigma = variability
    mu = math.log(max(mean, 0.01)) - 0.5 * sigma * sigma
    price = math.exp(rng.normalvariate(mu, sigma))
    return Decimal(str(round(max(price, 0.01), 2)))


def _sample_quantity(rng: random.Random, mean_q: float) -> int:
    # Discretized log-normal for positive integer quantities
    q = max(1.0, rng.lognormvariate(mu=math.log(max(mean_q, 0.1)), sigma=0.5))
    return max(1, int(round(q)))


def _random_timestamp(rng: random.Random, start: date, end: date) -> datetime:
    offset = rng.randrange((end - start).days + 1)
    day = start + timedelta(days=offset)
    return datetime(day.year, day.month, day.day, 8 + rng.randrange(10), rng.randrange(60))


def generate_products(
    n: int,
    *,
    config: Optional[SyntheticConfig] = None,
    seed: Optional[int] = None,
) -> List[Product]:
    """Generate ``n`` products with stock codes ``"P-1"``, ``"P-2"``, ..."""

    config = config or SyntheticConfig()
    rng = random.Random(seed)
    products: List[Product] = []
    for i in range(n):
        roll = rng.random()
        if roll < config.missing_description_rate:
            description = None
        elif products and roll < config.missing_description_rate + config.shared_description_rate:
            description = rng.choice(products).description
        else:
            colour = rng.choice(("RED", "WHITE", "PINK", "BLUE", "VINTAGE"))
            description = f"{colour} {rng.choice(_PRODUCT_WORDS)} {i + 1}"
        products.append(
            Product(
                stock_code=f"P-{i + 1}",
                description=description,
                unit_price=_sample_price(rng, config.mean_unit_price, config.price_variability),
            )
        )
    return products


def generate_dataset(
    n_customers: int,
    n_products: int,
    n_invoices: int,
    *,
    start: date = date(2023, 1, 1),
    end: date = date(2023, 12, 31),
    seed: Optional[int] = None,
    config: Optional[SyntheticConfig] = None,
) -> RetailDataset:
    """Generate a reproducible, referentially consistent retail dataset.

    The dataset deliberately contains the awkward cases the queries must
    handle: customers without a country or without invoices, invoices
    without a customer or without lines, products without sales, shared
    descriptions, returns, and repeat purchases of a product within one
    invoice (merged into a single line).
    """

    if start > end:
        raise ValueError("start date must be <= end date")
    if min(n_customers, n_products, n_invoices) < 0:
        raise ValueError("counts must be non-negative")

    config = config or SyntheticConfig()
    rng = random.Random(seed)
    dataset = RetailDataset()

    active_ids: List[int] = []
    for i in range(n_customers):
        customer_id = 10_000 + i
        country = (
            None
            if rng.random() < config.missing_country_rate
            else rng.choice(list(config.countries))
        )
        dataset.add_customer(Customer(customer_id=customer_id, country=country))
        if rng.random() >= config.inactive_customer_rate:
            active_ids.append(customer_id)

    products = generate_products(n_products, config=config, seed=rng.randrange(2**31))
    for product in products:
        dataset.add_product(product)

    for seq in range(n_invoices):
        customer_id = None
        if active_ids and rng.random() >= config.orphan_invoice_rate:
            customer_id = rng.choice(active_ids)
        invoice = Invoice(
            invoice_no=f"{536_000 + seq}",
            invoice_date=_random_timestamp(rng, start, end),
            customer_id=customer_id,
        )
        dataset.add_invoice(invoice)

        if not products or rng.random() < config.empty_invoice_rate:
            continue
        bought: List[str] = []
        for _ in range(1 + rng.randrange(config.max_lines_per_invoice)):
            if bought and rng.random() < config.repeat_purchase_rate:
                stock_code = rng.choice(bought)
            else:
                stock_code = rng.choice(products).stock_code
            quantity = _sample_quantity(rng, config.quantity_mean)
            if rng.random() < config.return_rate:
                quantity = -quantity
            dataset.record_purchase(invoice.invoice_no, stock_code, quantity)
            bought.append(stock_code)

    return dataset
