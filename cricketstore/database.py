# cricketstore/database.py
"""
File-backed table store using CSV files as storage.
Provides filtered CRUD primitives per table name. Every read-modify-write runs
under a per-table file lock, so a filtered update or delete is a single atomic
call and concurrent writers never corrupt a file.

Usage:
    db = FileBackedDB(settings.DATA_DIR, settings.table_files())
    db.list_records("orders", where={"customer_email": "a@b.com"})
    db.get_record("products", "sku", "BAT-001")
    db.create_record("wishlists", {"user_id": "1", "product_id": "3"}, unique=("user_id", "product_id"))
    db.delete_records("wishlists", {"id": "7", "user_id": "1"})
"""

from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional
import threading

import pandas as pd
from filelock import FileLock


class DuplicateRecordError(Exception):
    """Raised by create_record when a uniqueness constraint would be violated."""

    def __init__(self, table: str, fields: Iterable[str]):
        self.table = table
        self.fields = tuple(fields)
        super().__init__(f"Duplicate record in {table} for {', '.join(self.fields)}")


def _cell(value: Any) -> str:
    # the CSV files are string-typed; models convert on the way out
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class FileBackedDB:
    """
    Manages CSV files inside data_dir.
    Table name maps to a file name via `table_files` (fallback: "<table>.csv").
    Ids are numeric and assigned as max(id) + 1 inside the table lock.
    """

    def __init__(self, data_dir: Path, table_files: Optional[Mapping[str, str]] = None):
        self.data_dir = Path(data_dir)
        self.table_files = dict(table_files or {})
        self._locks: Dict[Path, FileLock] = {}
        self._locks_guard = threading.Lock()

    def _file_path(self, table: str) -> Path:
        if table.endswith(".csv"):
            return self.data_dir / Path(table)
        filename = self.table_files.get(table, f"{table}.csv")
        return self.data_dir / Path(filename)

    def _lock_for(self, path: Path) -> FileLock:
        # one reentrant lock object per file; the OS lock serialises threads and processes
        with self._locks_guard:
            lock = self._locks.get(path)
            if lock is None:
                path.parent.mkdir(parents=True, exist_ok=True)
                lock = FileLock(str(path) + ".lock")
                self._locks[path] = lock
            return lock

    def _read_df(self, table: str) -> pd.DataFrame:
        path = self._file_path(table)
        if not path.exists():
            return pd.DataFrame()
        return pd.read_csv(path, dtype=str, keep_default_na=False).fillna("")

    def _write_df_nolock(self, table: str, df: pd.DataFrame) -> None:
        """
        Write DataFrame for `table` WITHOUT acquiring the file lock.
        Use this only when the caller already holds the lock.
        """
        path = self._file_path(table)
        path.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(path, index=False)

    @staticmethod
    def _mask(df: pd.DataFrame, where: Optional[Mapping[str, Any]]) -> pd.Series:
        mask = pd.Series(True, index=df.index)
        for key, value in (where or {}).items():
            if key not in df.columns:
                return pd.Series(False, index=df.index)
            mask &= df[key].astype(str) == _cell(value)
        return mask

    @staticmethod
    def _seq_path(path: Path) -> Path:
        return path.with_name(path.name + ".seq")

    def _next_id(self, path: Path, df: pd.DataFrame) -> int:
        """
        Next id for the table at `path`. The high-water mark in `<file>.seq` never
        goes back, so an id freed by a delete is never handed out again.
        Caller must hold the table lock.
        """
        last = 0
        seq = self._seq_path(path)
        if seq.exists():
            raw = seq.read_text().strip()
            last = int(raw) if raw.isdigit() else 0
        if not df.empty and "id" in df.columns:
            ids = pd.to_numeric(df["id"], errors="coerce")
            if ids.notna().any():
                last = max(last, int(ids.max()))
        return last + 1

    @staticmethod
    def _rows(df: pd.DataFrame) -> List[Dict[str, Any]]:
        return df.to_dict(orient="records")

    # --- high-level CRUD primitives ---

    def list_records(self, table: str, where: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
        with self._lock_for(self._file_path(table)):
            df = self._read_df(table)
        if df.empty:
            return []
        return self._rows(df[self._mask(df, where)])

    def find_one(self, table: str, where: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        rows = self.list_records(table, where)
        return rows[0] if rows else None

    def get_record(self, table: str, key: str, value: Any) -> Optional[Dict[str, Any]]:
        return self.find_one(table, {key: value})

    def count(self, table: str, where: Optional[Mapping[str, Any]] = None) -> int:
        return len(self.list_records(table, where))

    def create_record(
        self,
        table: str,
        data: Dict[str, Any],
        unique: Optional[Iterable[str]] = None,
    ) -> Dict[str, Any]:
        """
        Insert a new record and return it as stored (string-typed, with its new id).
        `unique` names columns whose combined values must not already exist;
        the check runs inside the lock and raises DuplicateRecordError.
        """
        path = self._file_path(table)
        with self._lock_for(path):
            df = self._read_df(table)
            if unique and not df.empty:
                fields = tuple(unique)
                if self._mask(df, {f: data.get(f) for f in fields}).any():
                    raise DuplicateRecordError(table, fields)
            next_id = self._next_id(path, df)
            new_row = {"id": str(next_id)}
            new_row.update({k: _cell(v) for k, v in data.items() if k != "id"})
            if df.empty:
                df = pd.DataFrame([new_row], dtype=str)
            else:
                df = pd.concat([df, pd.DataFrame([new_row], dtype=str)], ignore_index=True, sort=False).fillna("")
            self._write_df_nolock(table, df)
            self._seq_path(path).write_text(str(next_id))
            return {k: new_row.get(k, "") for k in df.columns}

    def update_records(self, table: str, where: Mapping[str, Any], updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Update rows matching every `where` equality with fields in `updates`.
        Returns the first updated row or None when nothing matched (no row is created).
        """
        path = self._file_path(table)
        with self._lock_for(path):
            df = self._read_df(table)
            if df.empty:
                return None
            mask = self._mask(df, where)
            if not mask.any():
                return None
            for k, v in updates.items():
                if k not in df.columns:
                    df[k] = ""
                df.loc[mask, k] = _cell(v)
            self._write_df_nolock(table, df)
            return self._rows(df[mask])[0]

    def delete_records(self, table: str, where: Mapping[str, Any]) -> List[Dict[str, Any]]:
        """
        Delete all rows matching every `where` equality. Returns the deleted rows.
        """
        path = self._file_path(table)
        with self._lock_for(path):
            df = self._read_df(table)
            if df.empty or not where:
                return []
            mask = self._mask(df, where)
            if not mask.any():
                return []
            deleted = self._rows(df[mask])
            self._write_df_nolock(table, df[~mask])
            return deleted
