"""CSV and Excel parser for bank transaction exports."""
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import List, Dict, Any, Optional

import pandas as pd

logger = logging.getLogger(__name__)

# Known bank format patterns, checked in order
BANK_FORMATS = {
    "chase": {
        "headers": ["Posting Date", "Description", "Amount", "Balance"],
        "mapping": {
            "posted_date": "Posting Date",
            "description": "Description",
            "amount": "Amount",
            "balance": "Balance",
        }
    },
    "generic": {
        "headers": ["Date", "Amount", "Description"],
        "mapping": {
            "posted_date": "Date",
            "description": "Description",
            "amount": "Amount",
        }
    }
}

# Common column name variations, used when no known format matches
DATE_COLUMNS = ["posting date", "posted date", "date", "transaction date", "trans date", "post date"]
AMOUNT_COLUMNS = ["amount", "transaction amount", "trans_amt", "debit/credit", "value"]
DESC_COLUMNS = ["description", "payee", "merchant", "name", "memo", "details"]
BALANCE_COLUMNS = ["balance", "running balance", "running bal."]

HEADER_HINTS = ["date", "amount", "description", "payee"]


class CSVParser:
    """Parser for CSV and Excel bank exports with auto-format detection."""

    def __init__(self, column_mapping: Optional[Dict[str, str]] = None):
        """Initialize parser with optional custom column mapping.

        Args:
            column_mapping: Custom mapping of {output_field: input_column}
                where output fields are posted_date, amount, description, balance
        """
        self.column_mapping = column_mapping

    def detect_format(self, file_path: Path) -> str:
        """Detect bank format from file headers.

        Returns:
            Format name (chase or generic)
        """
        df = self._read_file(file_path, nrows=5)
        headers = {str(h).lower().strip() for h in df.columns}

        for format_name, config in BANK_FORMATS.items():
            if all(h.lower() in headers for h in config["headers"]):
                return format_name
        return "generic"

    def parse(self, file_path: Path) -> List[Dict[str, Any]]:
        """Parse a CSV or Excel file into transaction dicts.

        Rows without a parseable date or amount are skipped.

        Args:
            file_path: Path to the file

        Returns:
            List of dicts with posted_date (ISO), amount, description, balance
        """
        df = self._clean_dataframe(self._read_file(file_path))
        if df.empty:
            return []

        mapping = self._get_column_mapping(df)
        if "posted_date" not in mapping or "amount" not in mapping:
            raise ValueError(f"Could not find date and amount columns in {file_path}")

        transactions = []
        skipped = 0
        for _, row in df.iterrows():
            txn = self._row_to_transaction(row, mapping)
            if txn:
                transactions.append(txn)
            else:
                skipped += 1

        if skipped:
            logger.info(f"Skipped {skipped} unparseable rows in {Path(file_path).name}")
        return transactions

    def _read_file(self, file_path: Path, nrows: Optional[int] = None) -> pd.DataFrame:
        """Read CSV or Excel file into DataFrame."""
        path = Path(file_path)
        if path.suffix.lower() in [".xlsx", ".xls"]:
            return pd.read_excel(path, nrows=nrows)
        return self._read_csv_with_header_detection(path, nrows)

    def _read_csv_with_header_detection(
        self,
        path: Path,
        nrows: Optional[int] = None
    ) -> pd.DataFrame:
        """Read CSV, skipping any preamble lines above the header row."""
        with open(path, "r", encoding="utf-8", errors="ignore") as f:
            lines = f.readlines()

        # pandas skips blank lines, so only count non-blank ones
        pandas_row = 0
        header_row = 0
        for line in lines[:20]:
            lower = line.lower().strip()
            if not lower:
                continue
            if "," in lower and any(hint in lower for hint in HEADER_HINTS):
                header_row = pandas_row
                break
            pandas_row += 1

        # Chase exports end rows with a trailing comma
        return pd.read_csv(path, header=header_row, nrows=nrows, index_col=False)

    def _clean_dataframe(self, df: pd.DataFrame) -> pd.DataFrame:
        df.columns = [str(c).strip() for c in df.columns]
        return df.dropna(how="all")

    def _get_column_mapping(self, df: pd.DataFrame) -> Dict[str, str]:
        """Determine column mapping for the dataframe."""
        if self.column_mapping:
            return self.column_mapping

        columns_lower = {str(c).lower(): c for c in df.columns}

        for config in BANK_FORMATS.values():
            if all(h.lower() in columns_lower for h in config["headers"]):
                return {
                    field: columns_lower[column.lower()]
                    for field, column in config["mapping"].items()
                }

        mapping = {}
        for field, candidates in (
            ("posted_date", DATE_COLUMNS),
            ("amount", AMOUNT_COLUMNS),
            ("description", DESC_COLUMNS),
            ("balance", BALANCE_COLUMNS),
        ):
            for col in candidates:
                if col in columns_lower:
                    mapping[field] = columns_lower[col]
                    break
        return mapping

    def _row_to_transaction(
        self,
        row: pd.Series,
        mapping: Dict[str, str]
    ) -> Optional[Dict[str, Any]]:
        """Convert a DataFrame row to a transaction dict."""
        date_val = row.get(mapping.get("posted_date", ""))
        amount_val = row.get(mapping.get("amount", ""))
        desc_val = row.get(mapping.get("description", ""))
        balance_val = row.get(mapping.get("balance", "")) if "balance" in mapping else None

        if date_val is None or amount_val is None or pd.isna(date_val) or pd.isna(amount_val):
            return None

        posted_date = self._normalize_date(date_val)
        amount = self._normalize_amount(amount_val)
        if not posted_date or amount is None:
            return None

        if desc_val is None or pd.isna(desc_val) or not str(desc_val).strip():
            description = "UNKNOWN"
        else:
            description = " ".join(str(desc_val).split())

        balance = None
        if balance_val is not None and not pd.isna(balance_val):
            balance = self._normalize_amount(balance_val)

        return {
            "posted_date": posted_date,
            "amount": amount,
            "description": description,
            "balance": balance,
        }

    def _normalize_date(self, date_val: Any) -> Optional[str]:
        """Normalize various date formats to ISO (YYYY-MM-DD)."""
        if isinstance(date_val, (datetime, pd.Timestamp)):
            return date_val.strftime("%Y-%m-%d")

        date_str = str(date_val).strip()
        formats = [
            "%Y-%m-%d",      # ISO
            "%m/%d/%Y",      # US
            "%m/%d/%y",      # US short year
            "%d-%b-%Y",      # 15-Jan-2024
            "%Y/%m/%d",      # Alternative ISO
        ]
        for fmt in formats:
            try:
                return datetime.strptime(date_str, fmt).strftime("%Y-%m-%d")
            except ValueError:
                continue

        try:
            return pd.to_datetime(date_str).strftime("%Y-%m-%d")
        except (ValueError, TypeError):
            return None

    def _normalize_amount(self, amount_val: Any) -> Optional[float]:
        """Normalize various amount formats to float."""
        if isinstance(amount_val, (int, float)):
            return float(amount_val)

        amount_str = re.sub(r"[$,\s]", "", str(amount_val))
        # Accounting format: (12.50) is negative
        if amount_str.startswith("(") and amount_str.endswith(")"):
            amount_str = "-" + amount_str[1:-1]

        try:
            return float(amount_str)
        except ValueError:
            return None
