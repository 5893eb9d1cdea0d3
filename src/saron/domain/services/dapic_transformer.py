"""Transform Dapic sale records to Saron domain models."""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Mapping, Optional, Sequence

from pydantic import ValidationError

from saron.core.date_helpers import parse_erp_date
from saron.domain.entities.sales import SaleData, SaleItemData

Extractor = Callable[[Mapping[str, Any]], Any]


class RecordNormalizationError(Exception):
    """A single ERP record could not be converted to the internal shape."""

    pass


def key(name: str) -> Extractor:
    """Extractor reading a top-level key."""
    return lambda record: record.get(name)


def first_of_list(list_name: str, name: str) -> Extractor:
    """Extractor reading a key of the first element of a nested list."""

    def extract(record: Mapping[str, Any]) -> Any:
        entries = record.get(list_name)
        if isinstance(entries, list):
            for entry in entries:
                if isinstance(entry, Mapping) and not is_empty(entry.get(name)):
                    return entry.get(name)
        return None

    return extract


def is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return not value
    return False


def first_present(record: Mapping[str, Any], extractors: Sequence[Extractor], default: Any = None) -> Any:
    """
    Evaluate extractors in order and return the first non-empty value.

    Args:
        record: Raw ERP record
        extractors: Ordered extractor functions for one logical field
        default: Value returned when every extractor comes back empty

    Returns:
        First non-empty extracted value, or default
    """
    for extractor in extractors:
        value = extractor(record)
        if not is_empty(value):
            return value
    return default


def to_decimal(value: Any, field_name: str) -> Decimal:
    """
    Convert an ERP number to Decimal.

    Accepts ints, floats and strings using either "." or "," as the decimal
    separator ("1234.56", "1.234,56", "1234,56").
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise RecordNormalizationError(f"Invalid number for {field_name}: {value!r}")

    text = str(value).strip()
    if "," in text:
        text = text.replace(".", "").replace(",", ".")

    try:
        number = Decimal(text)
    except InvalidOperation as e:
        raise RecordNormalizationError(f"Invalid number for {field_name}: {value!r}") from e

    if not number.is_finite():
        raise RecordNormalizationError(f"Invalid number for {field_name}: {value!r}")
    return number


# Ordered fallbacks per logical field, first non-empty wins
SALE_CODE_FIELDS: tuple[Extractor, ...] = (key("Codigo"), key("CodigoVenda"))
SALE_DATE_FIELDS: tuple[Extractor, ...] = (key("DataFechamento"), key("DataEmissao"), key("Data"))
SALE_VALUE_FIELDS: tuple[Extractor, ...] = (key("ValorLiquido"), key("ValorTotal"))
SELLER_FIELDS: tuple[Extractor, ...] = (key("NomeVendedor"), key("Vendedor"))
CLIENT_FIELDS: tuple[Extractor, ...] = (key("NomeCliente"), key("Cliente"))
STATUS_FIELDS: tuple[Extractor, ...] = (key("Status"),)
PAYMENT_FIELDS: tuple[Extractor, ...] = (
    key("FormaPagamento"),
    key("MeioPagamento"),
    key("TipoPagamento"),
    first_of_list("Recebimentos", "FormaPagamento"),
)

ITEM_CODE_FIELDS: tuple[Extractor, ...] = (key("CodigoProduto"), key("Codigo"))
ITEM_DESCRIPTION_FIELDS: tuple[Extractor, ...] = (key("Descricao"), key("NomeProduto"))
ITEM_QUANTITY_FIELDS: tuple[Extractor, ...] = (key("Quantidade"),)
ITEM_UNIT_PRICE_FIELDS: tuple[Extractor, ...] = (key("ValorUnitario"), key("PrecoUnitario"))
ITEM_TOTAL_FIELDS: tuple[Extractor, ...] = (key("ValorTotal"), key("Total"))

DEFAULT_SELLER = "Sem Vendedor"
DEFAULT_STATUS = "Finalizado"
DEFAULT_DESCRIPTION = "Sem Descrição"


class DapicSaleTransformer:
    """Transform vendaspdv records from the Dapic API to SaleData/SaleItemData."""

    def __init__(self, today: Optional[Callable[[], date]] = None) -> None:
        """
        Initialize transformer.

        Args:
            today: Returns the date used when a record carries no date
        """
        self._today = today or date.today

    def sale_code(self, record: Mapping[str, Any]) -> str:
        """
        Get the sale code of a raw record.

        Raises:
            RecordNormalizationError: If the record has no code
        """
        code = first_present(record, SALE_CODE_FIELDS)
        if code is None:
            raise RecordNormalizationError("Sale record without Codigo/CodigoVenda")
        return str(code).strip()

    def transform_sale(
        self,
        record: Mapping[str, Any],
        store_id: str,
        default_date: Optional[date] = None,
    ) -> tuple[SaleData, list[SaleItemData]]:
        """
        Transform a Dapic sale record to a sale and its items.

        Args:
            record: Raw vendaspdv record
            store_id: Store the record was fetched from
            default_date: Date used when the record carries none (today if not provided)

        Returns:
            Tuple (sale, items)

        Raises:
            RecordNormalizationError: If a field cannot be converted
        """
        sale_code = self.sale_code(record)

        raw_date = first_present(record, SALE_DATE_FIELDS)
        if raw_date is None:
            sale_date = default_date or self._today()
        else:
            try:
                sale_date = parse_erp_date(raw_date)
            except (TypeError, ValueError) as e:
                raise RecordNormalizationError(f"Invalid date for sale {sale_code}: {raw_date!r}") from e

        client_name = first_present(record, CLIENT_FIELDS)
        payment_method = first_present(record, PAYMENT_FIELDS)

        try:
            sale = SaleData(
                sale_code=sale_code,
                sale_date=sale_date,
                total_value=to_decimal(first_present(record, SALE_VALUE_FIELDS, 0), "ValorLiquido"),
                seller_name=str(first_present(record, SELLER_FIELDS, DEFAULT_SELLER)),
                client_name=str(client_name) if client_name is not None else None,
                store_id=store_id,
                status=str(first_present(record, STATUS_FIELDS, DEFAULT_STATUS)),
                payment_method=str(payment_method) if payment_method is not None else None,
            )
        except ValidationError as e:
            raise RecordNormalizationError(f"Invalid sale {sale_code}: {e}") from e

        items = [self.transform_item(item, sale_code) for item in self._items(record)]
        return sale, items

    def transform_item(self, item: Mapping[str, Any], sale_code: str = "") -> SaleItemData:
        """Transform one entry of a sale's "Itens" list."""
        code = first_present(item, ITEM_CODE_FIELDS, "")

        try:
            return SaleItemData(
                product_code=str(code),
                product_description=str(first_present(item, ITEM_DESCRIPTION_FIELDS, DEFAULT_DESCRIPTION)),
                quantity=to_decimal(first_present(item, ITEM_QUANTITY_FIELDS, 1), "Quantidade"),
                unit_price=to_decimal(first_present(item, ITEM_UNIT_PRICE_FIELDS, 0), "ValorUnitario"),
                total_price=to_decimal(first_present(item, ITEM_TOTAL_FIELDS, 0), "ValorTotal"),
            )
        except ValidationError as e:
            raise RecordNormalizationError(f"Invalid item in sale {sale_code}: {e}") from e

    @staticmethod
    def _items(record: Mapping[str, Any]) -> list[Mapping[str, Any]]:
        entries = record.get("Itens")
        if not isinstance(entries, list):
            return []
        return [entry for entry in entries if isinstance(entry, Mapping)]
