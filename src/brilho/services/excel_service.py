from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Optional

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Font

from brilho.domain.errors import AppError, ImportFileError, ValidationError
from brilho.domain.formatting import parse_decimal, parse_int
from brilho.services.customer_service import normalize_customer_fields
from brilho.repositories.unit_of_work import now_iso

log = logging.getLogger(__name__)

PRODUCT_HEADERS = ["Nome", "Categoria", "Custo (R$)", "Venda (R$)", "Estoque", "Descrição"]
CUSTOMER_HEADERS = [
    "Nome", "Telefone", "Data Nascimento", "Rua", "Número", "Bairro",
    "Cidade", "Estado", "Complemento", "Observações",
]
# spreadsheet header -> customers column
CUSTOMER_COLUMNS = {
    "Nome": "name",
    "Telefone": "phone",
    "Data Nascimento": "birth_date",
    "Rua": "street",
    "Número": "number",
    "Bairro": "neighborhood",
    "Cidade": "city",
    "Estado": "state",
    "Complemento": "complement",
    "Observações": "notes",
}

TEMPLATES = {
    "products": (
        PRODUCT_HEADERS,
        ["Brinco de Ouro Exemplo", "Brincos", 50.0, 120.0, 10, "Brinco pequeno folheado"],
    ),
    "customers": (
        CUSTOMER_HEADERS,
        ["Maria Silva", "(11) 99999-9999", "1990-05-25", "Rua das Flores", "123",
         "Centro", "São Paulo", "SP", "Apto 10", "Cliente VIP"],
    ),
}

IMPORT_REASON = "Importação de planilha"


@dataclass(frozen=True)
class ImportResult:
    imported: int
    skipped: int


def _text(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or None


def _read_rows(path: str, required: list[str]) -> list[tuple[int, dict]]:
    """Returns (row number, {header: value}) for every non-blank data row."""
    try:
        wb = load_workbook(path, read_only=True, data_only=True)
    except Exception as exc:
        raise ImportFileError(f"Não foi possível abrir o arquivo: {exc}") from exc

    try:
        ws = wb.worksheets[0]
        rows = ws.iter_rows(values_only=True)
        header_row = next(rows, None)
        if not header_row:
            raise ImportFileError("O arquivo está vazio.")

        headers = {}
        for col, v in enumerate(header_row):
            if isinstance(v, str) and v.strip():
                headers[v.strip().lower()] = col

        missing = [h for h in required if h.lower() not in headers]
        if missing:
            raise ImportFileError(f"Coluna obrigatória ausente: {', '.join(missing)}")

        out = []
        for row_no, values in enumerate(rows, start=2):
            if all(v is None or (isinstance(v, str) and not v.strip()) for v in values):
                continue
            record = {}
            for name, col in headers.items():
                record[name] = values[col] if col < len(values) else None
            out.append((row_no, record))
    finally:
        wb.close()

    if not out:
        raise ImportFileError("O arquivo está vazio.")
    return out


def _cell(record: dict, header: str):
    return record.get(header.lower())


class ExcelService:
    def __init__(self, repo):
        self.repo = repo

    def write_template(self, kind: str, path: str) -> None:
        if kind not in TEMPLATES:
            raise ValidationError(f"Modelo desconhecido: {kind}")
        headers, example = TEMPLATES[kind]
        self._write_sheet(path, headers, [example])

    def _write_sheet(self, path: str, headers: list[str], rows: list[list]) -> None:
        wb = Workbook()
        ws = wb.active
        ws.title = "Dados"
        ws.append(headers)
        for c in ws[1]:
            c.font = Font(bold=True)
        for row in rows:
            ws.append(row)
        for i, h in enumerate(headers, start=1):
            ws.column_dimensions[ws.cell(row=1, column=i).column_letter].width = max(14, len(h) + 4)
        ws.freeze_panes = "A2"
        wb.save(path)

    def import_products(self, path: str, actor_user_id: int | None = None) -> ImportResult:
        """
        Headers: Nome | Categoria | Custo (R$) | Venda (R$) | Estoque | Descrição
        Only Nome and Venda (R$) are required. Initial stock is logged as an entry.
        """
        records = _read_rows(path, ["Nome", "Venda (R$)"])

        valid: list[dict] = []
        skipped = 0
        for row_no, record in records:
            try:
                name = _text(_cell(record, "Nome"))
                sell = parse_decimal(_cell(record, "Venda (R$)"), "Venda (R$)")
                if not name or sell <= 0:
                    skipped += 1
                    continue
                try:
                    buy = parse_decimal(_cell(record, "Custo (R$)"), "Custo (R$)")
                except ValidationError:
                    buy = 0.0
                try:
                    stock = parse_int(_cell(record, "Estoque"), "Estoque")
                except ValidationError:
                    stock = 0
                if buy < 0 or stock < 0:
                    skipped += 1
                    continue

                valid.append({
                    "name": name,
                    "category": _text(_cell(record, "Categoria")) or "Outros",
                    "buy_price": buy,
                    "sell_price": sell,
                    "stock_quantity": stock,
                    "description": _text(_cell(record, "Descrição")),
                })
            except AppError as e:
                log.warning("Product import skipped row %s: %s", row_no, e)
                skipped += 1

        if not valid:
            raise ImportFileError("Nenhum produto válido encontrado. Verifique as colunas.")

        self.repo.add_products(valid, now_iso(), reason=IMPORT_REASON, actor_user_id=actor_user_id)
        log.info("products_imported count=%s skipped=%s actor=%s", len(valid), skipped, actor_user_id)
        return ImportResult(imported=len(valid), skipped=skipped)

    def import_customers(self, path: str, actor_user_id: int | None = None) -> ImportResult:
        """
        Headers: Nome | Telefone | Data Nascimento | Rua | Número | Bairro |
        Cidade | Estado | Complemento | Observações. Only Nome is required;
        Data Nascimento is a date cell or text (aaaa-mm-dd or dd/mm/aaaa).
        """
        records = _read_rows(path, ["Nome"])

        valid: list[dict] = []
        skipped = 0
        for row_no, record in records:
            fields = {}
            for header, column in CUSTOMER_COLUMNS.items():
                value = _cell(record, header)
                fields[column] = value if column == "birth_date" else _text(value)
            if not fields["name"]:
                skipped += 1
                continue
            try:
                valid.append(normalize_customer_fields(fields))
            except AppError as e:
                log.warning("Customer import skipped row %s: %s", row_no, e)
                skipped += 1

        if not valid:
            raise ImportFileError("Nenhum cliente válido encontrado.")

        self.repo.add_customers(valid, now_iso(), actor_user_id=actor_user_id)
        log.info("customers_imported count=%s skipped=%s actor=%s", len(valid), skipped, actor_user_id)
        return ImportResult(imported=len(valid), skipped=skipped)

    def export_products(self, path: str) -> int:
        products = self.repo.list_products()
        rows = [
            [p.name, p.category or "", p.buy_price, p.sell_price, p.stock_quantity, p.description or ""]
            for p in products
        ]
        self._write_sheet(path, PRODUCT_HEADERS, rows)
        return len(rows)

    def export_customers(self, path: str) -> int:
        customers = self.repo.list_customers()
        rows = [
            [getattr(c, column) or "" for column in CUSTOMER_COLUMNS.values()]
            for c in customers
        ]
        self._write_sheet(path, CUSTOMER_HEADERS, rows)
        return len(rows)
