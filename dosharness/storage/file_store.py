"""Persistent key-value store the virtual filesystem synchronizes to."""

from __future__ import annotations

import datetime as dt
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Mapping

from sqlalchemy import create_engine, delete, select
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from ..config import StoreConfig
from ..errors import StoreVersionError
from ..logging_utils import get_logger
from .models import Base, FileDataRecord, StoreMetaRecord

DEFAULT_FILE_MODE = 0o100644

_ENGINES: dict[str, Engine] = {}
_ENGINES_LOCK = threading.Lock()


@dataclass(frozen=True, slots=True)
class FileRecord:
    path: str
    contents: bytes
    mode: int
    timestamp: dt.datetime


def _engine_for(url: str) -> Engine:
    with _ENGINES_LOCK:
        engine = _ENGINES.get(url)
        if engine is None:
            parsed = make_url(url)
            database = parsed.database
            if parsed.get_backend_name() == "sqlite" and database and database != ":memory:":
                Path(database).parent.mkdir(parents=True, exist_ok=True)
            engine = create_engine(url, pool_pre_ping=True)
            Base.metadata.create_all(engine)
            _ENGINES[url] = engine
        return engine


def dispose_engines() -> None:
    """Close every cached engine; the next open reconnects."""

    with _ENGINES_LOCK:
        engines = list(_ENGINES.values())
        _ENGINES.clear()
    for engine in engines:
        engine.dispose()


class PersistentFileStore:
    """Versioned ``FILE_DATA`` table keyed by absolute virtual path."""

    def __init__(self, engine: Engine, name: str, version: int) -> None:
        self._engine = engine
        self.name = name
        self.version = version
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)
        self._log = get_logger("store")

    @classmethod
    def open(cls, config: StoreConfig) -> "PersistentFileStore":
        store = cls(_engine_for(config.url), config.name, config.version)
        store._ensure_version()
        return store

    @contextmanager
    def session(self) -> Iterator[Session]:
        session: Session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _ensure_version(self) -> None:
        with self.session() as session:
            meta = session.get(StoreMetaRecord, self.name)
            if meta is None:
                session.add(StoreMetaRecord(name=self.name, version=self.version))
                self._log.info("Created store {} at version {}", self.name, self.version)
                return
            if meta.version > self.version:
                raise StoreVersionError(
                    f"Store {self.name} is at version {meta.version}, "
                    f"requested {self.version}"
                )
            if meta.version < self.version:
                self._log.info(
                    "Upgrading store {} from version {} to {}",
                    self.name,
                    meta.version,
                    self.version,
                )
                meta.version = self.version

    def get(self, path: str) -> FileRecord | None:
        with self.session() as session:
            row = session.get(FileDataRecord, (self.name, path))
            if row is None:
                return None
            return FileRecord(
                path=row.path,
                contents=bytes(row.contents),
                mode=row.mode,
                timestamp=row.timestamp,
            )

    def put(self, path: str, contents: bytes, mode: int = DEFAULT_FILE_MODE) -> None:
        with self.session() as session:
            session.merge(
                FileDataRecord(
                    store_name=self.name,
                    path=path,
                    contents=bytes(contents),
                    mode=mode,
                    timestamp=dt.datetime.now(dt.timezone.utc),
                )
            )

    def delete(self, path: str) -> bool:
        with self.session() as session:
            row = session.get(FileDataRecord, (self.name, path))
            if row is None:
                return False
            session.delete(row)
            return True

    def paths(self) -> list[str]:
        with self.session() as session:
            stmt = (
                select(FileDataRecord.path)
                .where(FileDataRecord.store_name == self.name)
                .order_by(FileDataRecord.path)
            )
            return list(session.scalars(stmt))

    def replace_all(self, files: Mapping[str, bytes]) -> None:
        """Mirror ``files`` exactly: upsert every entry, drop every other path."""

        now = dt.datetime.now(dt.timezone.utc)
        with self.session() as session:
            stale = set(
                session.scalars(
                    select(FileDataRecord.path).where(FileDataRecord.store_name == self.name)
                )
            ) - set(files)
            if stale:
                session.execute(
                    delete(FileDataRecord).where(
                        FileDataRecord.store_name == self.name,
                        FileDataRecord.path.in_(sorted(stale)),
                    )
                )
            for path, contents in files.items():
                session.merge(
                    FileDataRecord(
                        store_name=self.name,
                        path=path,
                        contents=bytes(contents),
                        mode=DEFAULT_FILE_MODE,
                        timestamp=now,
                    )
                )
        self._log.debug(
            "Synced {} files into store {} ({} removed)", len(files), self.name, len(stale)
        )
