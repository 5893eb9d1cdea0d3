"""Unit tests for DapicSaleTransformer."""

from datetime import date
from decimal import Decimal

import pytest

from saron.domain.services.dapic_transformer import (
    DapicSaleTransformer,
    RecordNormalizationError,
    first_present,
    key,
    to_decimal,
)


@pytest.fixture
def transformer() -> DapicSaleTransformer:
    return DapicSaleTransformer(today=lambda: date(2024, 3, 15))


class TestTransformSale:
    """Tests for transform_sale."""

    def test_full_record(self, transformer, make_sale_record):
        """Test a complete record maps every field and item."""
        sale, items = transformer.transform_sale(make_sale_record(987), "saron1")

        assert sale.sale_code == "987"
        assert sale.sale_date == date(2024, 3, 10)
        assert sale.total_value == Decimal("150.5")
        assert sale.seller_name == "Maria"
        assert sale.client_name == "Cliente Teste"
        assert sale.store_id == "saron1"
        assert sale.status == "Finalizado"
        assert sale.payment_method == "Cartão"

        assert len(items) == 2
        assert items[0].product_code == "P001"
        assert items[0].product_description == "Camiseta"
        assert items[0].quantity == Decimal("2")
        assert items[0].unit_price == Decimal("50.25")
        assert items[0].total_price == Decimal("100.5")

    def test_fallback_fields(self, transformer):
        """Test alternate field names are used when the primary ones are absent."""
        record = {
            "CodigoVenda": "V-1",
            "DataEmissao": "2024-02-01",
            "ValorTotal": "99.90",
            "Vendedor": "João",
            "Cliente": "Ana",
            "MeioPagamento": "PIX",
        }

        sale, items = transformer.transform_sale(record, "saron2")

        assert sale.sale_code == "V-1"
        assert sale.sale_date == date(2024, 2, 1)
        assert sale.total_value == Decimal("99.90")
        assert sale.seller_name == "João"
        assert sale.client_name == "Ana"
        assert sale.payment_method == "PIX"
        assert items == []

    def test_empty_primary_falls_through(self, transformer):
        """Test empty strings count as missing."""
        record = {"Codigo": "", "CodigoVenda": "X9", "NomeVendedor": "  ", "Vendedor": "Bia"}

        sale, _ = transformer.transform_sale(record, "saron1")

        assert sale.sale_code == "X9"
        assert sale.seller_name == "Bia"

    def test_zero_value_is_kept(self, transformer):
        """Test a zero net value does not fall back to the gross value."""
        sale, _ = transformer.transform_sale({"Codigo": 1, "ValorLiquido": 0, "ValorTotal": 50}, "saron1")

        assert sale.total_value == Decimal("0")

    def test_defaults(self, transformer):
        """Test defaults for a record with only a code."""
        sale, items = transformer.transform_sale({"Codigo": 5}, "saron3")

        assert sale.sale_date == date(2024, 3, 15)
        assert sale.total_value == Decimal("0")
        assert sale.seller_name == "Sem Vendedor"
        assert sale.client_name is None
        assert sale.status == "Finalizado"
        assert sale.payment_method is None
        assert items == []

    def test_default_date_used_when_missing(self, transformer):
        """Test the caller's default date wins over today for an undated record."""
        sale, _ = transformer.transform_sale({"Codigo": 5}, "saron1", default_date=date(2024, 1, 31))

        assert sale.sale_date == date(2024, 1, 31)

    def test_default_date_ignored_when_dated(self, transformer):
        record = {"Codigo": 5, "DataFechamento": "2024-01-10"}

        sale, _ = transformer.transform_sale(record, "saron1", default_date=date(2024, 1, 31))

        assert sale.sale_date == date(2024, 1, 10)

    def test_payment_from_receipts(self, transformer):
        record = {"Codigo": 1, "Recebimentos": [{"Valor": 10}, {"FormaPagamento": "Dinheiro"}]}

        sale, _ = transformer.transform_sale(record, "saron1")

        assert sale.payment_method == "Dinheiro"

    def test_brazilian_date(self, transformer):
        sale, _ = transformer.transform_sale({"Codigo": 1, "Data": "05/01/2024"}, "saron1")

        assert sale.sale_date == date(2024, 1, 5)

    def test_comma_decimal(self, transformer):
        sale, _ = transformer.transform_sale({"Codigo": 1, "ValorLiquido": "1.234,56"}, "saron1")

        assert sale.total_value == Decimal("1234.56")

    def test_missing_code(self, transformer):
        with pytest.raises(RecordNormalizationError):
            transformer.transform_sale({"ValorLiquido": 10}, "saron1")

    def test_invalid_date(self, transformer):
        with pytest.raises(RecordNormalizationError, match="Invalid date"):
            transformer.transform_sale({"Codigo": 1, "DataFechamento": "ontem"}, "saron1")

    def test_invalid_value(self, transformer):
        with pytest.raises(RecordNormalizationError, match="ValorLiquido"):
            transformer.transform_sale({"Codigo": 1, "ValorLiquido": "abc"}, "saron1")

    def test_non_dict_items_ignored(self, transformer):
        record = {"Codigo": 1, "Itens": [None, "x", {"Descricao": "Meia"}]}

        _, items = transformer.transform_sale(record, "saron1")

        assert len(items) == 1
        assert items[0].product_description == "Meia"


class TestTransformItem:
    """Tests for transform_item."""

    def test_item_fallbacks(self, transformer):
        item = transformer.transform_item(
            {"Codigo": "A1", "NomeProduto": "Calça", "PrecoUnitario": "80", "Total": "160"},
            "1",
        )

        assert item.product_code == "A1"
        assert item.product_description == "Calça"
        assert item.quantity == Decimal("1")
        assert item.unit_price == Decimal("80")
        assert item.total_price == Decimal("160")

    def test_item_defaults(self, transformer):
        item = transformer.transform_item({}, "1")

        assert item.product_code == ""
        assert item.product_description == "Sem Descrição"
        assert item.quantity == Decimal("1")
        assert item.unit_price == Decimal("0")

    def test_invalid_quantity(self, transformer):
        with pytest.raises(RecordNormalizationError, match="Quantidade"):
            transformer.transform_item({"Quantidade": "dois"}, "1")


class TestHelpers:
    """Tests for the extraction helpers."""

    def test_first_present_order(self):
        record = {"b": 2, "a": 1}

        assert first_present(record, (key("a"), key("b"))) == 1
        assert first_present(record, (key("c"), key("b"))) == 2
        assert first_present(record, (key("c"),), "default") == "default"

    @pytest.mark.parametrize(
        "value,expected",
        [
            (10, Decimal("10")),
            (10.5, Decimal("10.5")),
            ("10.50", Decimal("10.50")),
            ("10,50", Decimal("10.50")),
            ("1.000,00", Decimal("1000.00")),
        ],
    )
    def test_to_decimal(self, value, expected):
        assert to_decimal(value, "field") == expected

    @pytest.mark.parametrize("value", [True, "NaN", "Infinity", "", "1,2,3"])
    def test_to_decimal_rejects(self, value):
        with pytest.raises(RecordNormalizationError):
            to_decimal(value, "field")
