"""
Demo schema and seed data for sqlrecord.

Defines the blog schema (categories, authors, articles, users) as migrations,
the matching models, and a CLI that applies the schema and seeds a few rows
through ``Model.create``. Works against PostgreSQL and SQLite.
"""

from __future__ import annotations

import random
import sys
import time
from typing import List, Optional

import typer

from sqlrecord.config import ConnectionConfig, get_settings
from sqlrecord.domain.model import Model
from sqlrecord.infrastructure.connection import Connection
from sqlrecord.migrations import Migration

app = typer.Typer(help="Create the demo blog schema and seed it with sample rows.")


def _id_column(connection: Connection) -> str:
    if connection.config.driver == "sqlite":
        return "id INTEGER PRIMARY KEY AUTOINCREMENT"
    return "id SERIAL PRIMARY KEY"


class Category(Model):
    table = "categories"
    fillable = frozenset({"name", "slug", "description", "parent_id"})


class Author(Model):
    table = "authors"
    fillable = frozenset({"name", "email", "bio", "avatar", "website", "twitter", "github"})
    hidden = frozenset({"email"})


class Article(Model):
    table = "articles"
    fillable = frozenset(
        {
            "title",
            "slug",
            "content",
            "excerpt",
            "category_id",
            "author_id",
            "status",
            "featured_image",
            "published_at",
        }
    )


class User(Model):
    table = "users"
    fillable = frozenset({"name", "email", "password", "role"})
    hidden = frozenset({"password"})


class CreateCategoriesTable(Migration):
    def up(self, connection: Connection) -> None:
        connection.execute(
            f"""
            CREATE TABLE categories (
                {_id_column(connection)},
                name VARCHAR(255) NOT NULL,
                slug VARCHAR(255) NOT NULL UNIQUE,
                description TEXT,
                parent_id INTEGER NULL REFERENCES categories(id) ON DELETE SET NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
            """
        )

    def down(self, connection: Connection) -> None:
        connection.execute("DROP TABLE IF EXISTS categories")


class CreateAuthorsTable(Migration):
    def up(self, connection: Connection) -> None:
        connection.execute(
            f"""
            CREATE TABLE authors (
                {_id_column(connection)},
                name VARCHAR(255) NOT NULL,
                email VARCHAR(255) NOT NULL UNIQUE,
                bio TEXT,
                avatar VARCHAR(255),
                website VARCHAR(255),
                twitter VARCHAR(255),
                github VARCHAR(255),
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
            """
        )

    def down(self, connection: Connection) -> None:
        connection.execute("DROP TABLE IF EXISTS authors")


class CreateArticlesTable(Migration):
    def up(self, connection: Connection) -> None:
        connection.execute(
            f"""
            CREATE TABLE articles (
                {_id_column(connection)},
                title VARCHAR(255) NOT NULL,
                slug VARCHAR(255) NOT NULL UNIQUE,
                content TEXT NOT NULL,
                excerpt TEXT,
                category_id INTEGER REFERENCES categories(id) ON DELETE SET NULL,
                author_id INTEGER REFERENCES authors(id) ON DELETE SET NULL,
                status VARCHAR(16) DEFAULT 'draft'
                    CHECK (status IN ('draft', 'published', 'archived')),
                featured_image VARCHAR(255),
                published_at TIMESTAMP NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
            """
        )

    def down(self, connection: Connection) -> None:
        connection.execute("DROP TABLE IF EXISTS articles")


class CreateUsersTable(Migration):
    def up(self, connection: Connection) -> None:
        connection.execute(
            f"""
            CREATE TABLE users (
                {_id_column(connection)},
                name VARCHAR(255) NOT NULL,
                email VARCHAR(255) NOT NULL UNIQUE,
                password VARCHAR(255) NOT NULL,
                role VARCHAR(16) DEFAULT 'author'
                    CHECK (role IN ('admin', 'editor', 'author')),
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
            """
        )

    def down(self, connection: Connection) -> None:
        connection.execute("DROP TABLE IF EXISTS users")


MIGRATIONS: List[Migration] = [
    CreateCategoriesTable(),
    CreateAuthorsTable(),
    CreateArticlesTable(),
    CreateUsersTable(),
]


def apply_schema(connection: Connection) -> None:
    for migration in MIGRATIONS:
        migration.up(connection)


def drop_schema(connection: Connection) -> None:
    for migration in reversed(MIGRATIONS):
        migration.down(connection)


def seed(connection: Connection, articles: int, seed_value: int) -> int:
    """
    Seed categories, authors and ``articles`` articles in one transaction.

    Returns the number of articles created.
    """
    rng = random.Random(seed_value)
    connection.begin_transaction()
    try:
        categories = [
            Category.create(connection, {"name": name.title(), "slug": name})
            for name in ("python", "databases", "testing")
        ]
        authors = [
            Author.create(connection, {"name": name, "email": f"{name.lower()}@example.io"})
            for name in ("Ada", "Grace", "Linus")
        ]
        for index in range(articles):
            Article.create(
                connection,
                {
                    "title": f"Article {index + 1}",
                    "slug": f"article-{index + 1}",
                    "content": "Lorem ipsum " * rng.randint(5, 20),
                    "category_id": rng.choice(categories).get_key(),
                    "author_id": rng.choice(authors).get_key(),
                    "status": rng.choice(["draft", "published", "archived"]),
                },
            )
        connection.commit()
    except Exception:
        connection.rollback()
        raise
    return articles


@app.command()
def main(
    articles: int = typer.Option(10, "--articles", "-a", help="Number of articles to create."),
    seed_value: int = typer.Option(42, "--seed", help="Deterministic RNG seed."),
    sqlite: Optional[str] = typer.Option(
        None,
        "--sqlite",
        help="Use this SQLite file instead of the configured database.",
    ),
    fresh: bool = typer.Option(False, "--fresh", help="Drop the demo tables before creating them."),
) -> None:
    """
    Apply the demo schema and seed it.
    """
    start = time.perf_counter()
    if sqlite:
        config = ConnectionConfig(driver="sqlite", database=sqlite)
    else:
        config = get_settings().connection_config()

    with Connection(config) as db:
        typer.echo(f"Using {db.config.dsn}")
        if fresh:
            drop_schema(db)
        apply_schema(db)
        created = seed(db, articles=articles, seed_value=seed_value)

    duration = time.perf_counter() - start
    typer.echo(f"Seeded {created} articles in {duration:.2f}s.")


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
