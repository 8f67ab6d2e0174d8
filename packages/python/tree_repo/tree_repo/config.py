"""Configuration for the tree repositories.

Values come from the environment (a ``.env`` file is picked up from the
working directory or its parents). Applications can assign a new
``RepoSettings`` to ``tree_repo.config.settings`` before building services.
"""

from __future__ import annotations

import os

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field

load_dotenv(find_dotenv(usecwd=True))


class RepoSettings(BaseModel):
    """Storage locations and write-retry policy."""

    mongo_uri: str = Field(
        default_factory=lambda: os.getenv("TREE_MONGO_URI", "mongodb://localhost:27017")
    )
    db_name: str = Field(default_factory=lambda: os.getenv("TREE_DB_NAME", "page_trees"))
    documents_collection: str = Field(
        default_factory=lambda: os.getenv("TREE_DOCUMENTS_COLLECTION", "page_documents")
    )
    terms_collection: str = Field(
        default_factory=lambda: os.getenv("TREE_TERMS_COLLECTION", "terms")
    )
    counters_collection: str = Field(
        default_factory=lambda: os.getenv("TREE_COUNTERS_COLLECTION", "counters")
    )
    max_write_retries: int = Field(
        default_factory=lambda: int(os.getenv("TREE_MAX_WRITE_RETRIES", "3")),
        ge=0,
    )


settings = RepoSettings()
