"""
Transaction Sink Module

Append-only consumers of transaction records. A sink is a best-effort side
channel: the ledger catches SinkError and carries on, so a full disk or a
read-only path never fails a deposit or withdrawal.
"""

import csv
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Union

from .currency import format_amount
from .exceptions import SinkError
from .history import CSV_HEADER, TransactionRecord


class TransactionSink(ABC):
    """Abstract interface for transaction sinks"""

    @abstractmethod
    def write(self, record: TransactionRecord) -> None:
        """Append one record; raise SinkError on failure"""
        pass

    def close(self) -> None:
        """Release resources (default no-op)"""
        pass


class NullSink(TransactionSink):
    """Discards every record"""

    def write(self, record: TransactionRecord) -> None:
        pass


class InMemorySink(TransactionSink):
    """Collects records in a list, for tests and previews"""

    def __init__(self):
        self.records: List[TransactionRecord] = []

    def write(self, record: TransactionRecord) -> None:
        self.records.append(record)


class LoggingSink(TransactionSink):
    """Emits each record as a structured log line"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger("atm_ledger.transactions")

    def write(self, record: TransactionRecord) -> None:
        self.logger.info(
            f"{record.transaction_type.label} {record.sign}{format_amount(record.amount)}",
            extra={"action": record.transaction_type.name.lower(),
                   "amount": format_amount(record.amount),
                   "balance": format_amount(record.balance_after)}
        )


class CsvFileSink(TransactionSink):
    """
    Appends records to a CSV file

    The file gets a single header line when it is new or empty; every write
    opens the file in append mode so nothing is lost if the process dies
    between transactions.
    """

    def __init__(self, path: Union[str, Path], delimiter: str = ","):
        if not isinstance(delimiter, str) or len(delimiter) != 1:
            raise ValueError(f"CSV delimiter must be a single character, got {delimiter!r}")
        self.path = Path(path)
        self.delimiter = delimiter

    def write(self, record: TransactionRecord) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a", newline="", encoding="utf-8") as f:
                writer = csv.writer(f, delimiter=self.delimiter, lineterminator="\n")
                if f.tell() == 0:
                    writer.writerow(CSV_HEADER)
                writer.writerow(record.to_csv_row())
        except (OSError, csv.Error, TypeError) as e:
            raise SinkError(f"Error writing to transaction log {self.path}: {e}") from e

    def __repr__(self) -> str:
        return f"CsvFileSink({str(self.path)!r})"
