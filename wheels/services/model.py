"""Active-record base class for table-backed models.

A concrete model declares its table and its ordered column names, primary
key first::

    class Note(Model):
        TABLE = "notes"
        COLUMNS = ("id", "title", "body")

Members are plain instance attributes. A column that was never assigned is
absent, which is different from a column that was loaded or set as ``None``.
Members whose names clash with the model's own attributes, such as a form
field called ``save``, are kept apart and read through attribute access.
"""

import logging
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple

import sqlalchemy as sa
from sqlalchemy import Column, Integer, MetaData, Table

from ..core.errors import ModelStateError, PersistenceError, RecordNotFound
from .database import Database


logger = logging.getLogger(__name__)


class Model:
    TABLE: str = ""
    COLUMNS: Sequence[str] = ()

    __table__: Optional[Table] = None

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        if not cls.TABLE or not cls.COLUMNS:
            return

        for name in cls.COLUMNS:
            if name.startswith("_") or hasattr(Model, name):
                raise TypeError(f"{cls.__name__}: column {name!r} clashes with a Model attribute")

        pk, *columns = cls.COLUMNS
        cls.__table__ = Table(
            cls.TABLE,
            MetaData(),
            Column(pk, Integer, primary_key=True),
            *(Column(name) for name in columns),
        )

    def __init__(self, db: Database, members: Optional[Mapping[str, Any]] = None, **fields: Any):
        """
        Args:
            db: database handle used by every persistence operation
            members: optional field=>value members to populate the model
        """
        if self.__table__ is None:
            raise TypeError(f"{type(self).__name__} must declare TABLE and COLUMNS")
        self._db = db
        self._extra: Dict[str, Any] = {}
        self.populate(members or {})
        self.populate(fields)

    @property
    def db(self) -> Database:
        return self._db

    @property
    def primary_key(self) -> str:
        return self.COLUMNS[0]

    @property
    def columns(self) -> Tuple[str, ...]:
        """All the table's column names without the primary key."""
        return tuple(self.COLUMNS[1:])

    def populate(self, data: Mapping[str, Any]) -> None:
        """Assign members from a mapping.

        Unknown members are created, members not passed in are left alone.
        Does not access the database.
        """
        for key, value in data.items():
            if key.startswith("_") or hasattr(type(self), key):
                self._extra[key] = value
            else:
                setattr(self, key, value)

    def members(self) -> Dict[str, Any]:
        """All populated members, declared columns or not."""
        members = {key: value for key, value in vars(self).items() if not key.startswith("_")}
        members.update(self._extra)
        return members

    def __getattr__(self, name: str) -> Any:
        extra = self.__dict__.get("_extra", {})
        if name in extra:
            return extra[name]
        raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")

    def attributes(self, fields: Optional[Iterable[str]] = None) -> Dict[str, Any]:
        """Return the hydrated columns as a dict.

        Args:
            fields: limit the scope to these members, defaults to every
                column except the primary key

        Returns:
            name=>value pairs for members that are set, including ``None``
        """
        scope = self.columns if fields is None else fields
        members = vars(self)
        return {name: members[name] for name in scope if name in members}

    def has_id(self) -> bool:
        return vars(self).get(self.primary_key) is not None

    def save(self) -> None:
        """Update the row if the model has an id, otherwise insert one.

        Raises:
            ModelStateError: if the model has no data
            PersistenceError: if an insert returned no generated id
        """
        if self.has_id():
            self.update()
        else:
            self.insert()

    def insert(self) -> None:
        data = self.attributes()
        if self.has_id() or not data:
            raise ModelStateError("Model should have some members and no id")

        statement = sa.insert(self.__table__).values(**data)
        result = self._db.execute(statement)

        generated = result.inserted_primary_key
        if not generated or generated[0] is None:
            logger.error(f"Insert into {self.TABLE} returned no {self.primary_key}")
            raise PersistenceError(f"Unsuccessful insert into {self.TABLE}")

        setattr(self, self.primary_key, generated[0])
        logger.debug(f"Inserted {self!r}")

    def update(self, fields: Optional[Iterable[str]] = None) -> None:
        """Persist hydrated members to the row with this model's id.

        Args:
            fields: members to persist, defaults to every hydrated column

        Raises:
            ModelStateError: if the model has no id or no data
        """
        data = self.attributes(fields)
        if not self.has_id() or not data:
            raise ModelStateError("Model should have some members and an id")

        statement = (
            sa.update(self.__table__)
            .where(self.__table__.c[self.primary_key] == self._id())
            .values(**data)
        )
        result = self._db.execute(statement)

        if result.rowcount == 0:
            logger.info(f"Update of {self.TABLE} matched no row for {self.primary_key}={self._id()!r}")

    def delete(self) -> None:
        """Delete the row and set the id and every hydrated column to ``None``.

        Raises:
            ModelStateError: if the model has no id
        """
        if not self.has_id():
            raise ModelStateError("Trying to delete an uninitialised object")

        statement = sa.delete(self.__table__).where(self.__table__.c[self.primary_key] == self._id())
        result = self._db.execute(statement)

        if result.rowcount == 0:
            logger.info(f"Delete from {self.TABLE} matched no row for {self.primary_key}={self._id()!r}")

        setattr(self, self.primary_key, None)
        for name in self.columns:
            if name in vars(self):
                setattr(self, name, None)

    def load(self, id: Any) -> None:
        """Hydrate the model from the row with the given primary key.

        Currently populated members are overwritten.

        Raises:
            RecordNotFound: if there is no such row
        """
        statement = (
            sa.select(sa.literal_column("*"))
            .select_from(self.__table__)
            .where(self.__table__.c[self.primary_key] == id)
        )
        row = self._db.execute(statement).mappings().first()
        if row is None:
            raise RecordNotFound(f"No {self.TABLE} row with {self.primary_key}={id!r}")

        self.populate(row)

    def _id(self) -> Any:
        return vars(self).get(self.primary_key)

    def __repr__(self) -> str:
        members = ", ".join(
            f"{name}={vars(self)[name]!r}" for name in self.COLUMNS if name in vars(self)
        )
        return f"{type(self).__name__}({members})"
