from typing import Optional
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import Table, Column, BigInteger, String, Integer, Text, DateTime, MetaData, select

from src.domain.exceptions import DatabaseException
from src.domain.models import RepositoryRecord

# SQLAlchemy core Table definition
metadata = MetaData()
repos_table = Table(
    'git_repositories', metadata,
    Column('id', BigInteger, primary_key=True, autoincrement=False),
    Column('node_id', String),
    Column('name', String),
    Column('full_name', String),
    Column('owner_login', String),
    Column('html_url', String),
    Column('description', String(2000)),
    Column('primary_language', String),
    Column('star_count', Integer),
    Column('created_at', DateTime(timezone=True)),
    Column('pushed_at', DateTime(timezone=True)),
    Column('updated_at', DateTime(timezone=True)),
    Column('readme_text', Text),
    Column('readme_sha', String),
    Column('readme_etag', String),
    Column('last_crawled_at', DateTime(timezone=True)),
)

class PostgresRepository:
    """
    Repository class for interacting with the PostgreSQL database.
    Looks up records by id and upserts them keyed by id.
    """

    def __init__(self, db_url: str):
        self.engine = create_async_engine(db_url, echo=False)

    async def create_schema(self) -> None:
        """Creates the git_repositories table if it does not exist yet."""
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(metadata.create_all)
        except SQLAlchemyError as e:
            raise DatabaseException(f"Failed to create schema: {e}") from e

    async def find_by_id(self, repo_id: int) -> Optional[RepositoryRecord]:
        """
        Loads the stored record for a GitHub repository id.

        Args:
            repo_id (int): The numeric GitHub repository id.

        Returns:
            Optional[RepositoryRecord]: The record, or None if it has never been stored.
        """
        stmt = select(repos_table).where(repos_table.c.id == repo_id)
        try:
            async with self.engine.connect() as conn:
                result = await conn.execute(stmt)
                row = result.mappings().first()
        except SQLAlchemyError as e:
            raise DatabaseException(f"Failed to load repository {repo_id}: {e}") from e

        return RepositoryRecord(**row) if row is not None else None

    async def upsert(self, record: RepositoryRecord) -> None:
        """
        Inserts the record, or overwrites every column of the existing row with the same id.

        Args:
            record (RepositoryRecord): The fully merged record to persist.
        """
        values = record.model_dump()
        stmt = insert(repos_table).values(values)
        upsert_stmt = stmt.on_conflict_do_update(
            index_elements=['id'],
            set_={column: stmt.excluded[column] for column in values if column != 'id'},
        )

        try:
            async with self.engine.begin() as conn:
                await conn.execute(upsert_stmt)
        except SQLAlchemyError as e:
            raise DatabaseException(f"Failed to upsert repository {record.id}: {e}") from e
