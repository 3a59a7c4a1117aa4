"""
SQL safety utilities for preventing SQL injection.

Provides identifier validation and MySQL/TiDB backtick quoting for the
table and row id column names interpolated into probe queries. Range
bounds are always passed as query parameters, never interpolated.
"""

import re

# Strict ASCII-only patterns for SQL identifiers
VALID_IDENTIFIER = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_$]*$")
VALID_SCHEMA_TABLE = re.compile(
    r"^[a-zA-Z_][a-zA-Z0-9_$]*(\.[a-zA-Z_][a-zA-Z0-9_$]*)?$"
)

MAX_IDENTIFIER_LENGTH = 64


def validate_identifier(identifier: str) -> None:
    """
    Validate a SQL identifier (table name, column name).

    Args:
        identifier: The identifier to validate

    Raises:
        ValueError: If the identifier is empty, too long or contains
            invalid characters
    """
    if not identifier:
        raise ValueError("SQL identifier cannot be empty")

    if len(identifier) > MAX_IDENTIFIER_LENGTH:
        raise ValueError(
            f"SQL identifier {identifier!r} exceeds {MAX_IDENTIFIER_LENGTH} characters"
        )

    if not VALID_IDENTIFIER.match(identifier):
        raise ValueError(
            f"Invalid SQL identifier: {identifier!r}. "
            "Only ASCII letters, digits, underscores and $ are allowed, "
            "and must start with a letter or underscore."
        )


def validate_schema_table(schema_table: str) -> None:
    """
    Validate a schema.table identifier.

    Raises:
        ValueError: If the identifier format is invalid
    """
    if not schema_table:
        raise ValueError("Schema.table identifier cannot be empty")

    if not VALID_SCHEMA_TABLE.match(schema_table):
        raise ValueError(
            f"Invalid schema.table identifier: {schema_table!r}. "
            "Only ASCII letters, digits, underscores and $ are allowed."
        )

    for part in schema_table.split("."):
        validate_identifier(part)


def quote_identifier(identifier: str) -> str:
    """
    Validate and backtick-quote an identifier.

    Returns:
        Quoted identifier safe for use in SQL, e.g. `_tidb_rowid`

    Raises:
        ValueError: If the identifier is invalid
    """
    validate_identifier(identifier)
    return f"`{identifier}`"


def quote_schema_table(schema_table: str) -> str:
    """
    Validate and quote a table name that may be schema-qualified.

    Args:
        schema_table: "db.table" or just "table"

    Returns:
        `db`.`table` or `table`

    Raises:
        ValueError: If the identifier is invalid
    """
    validate_schema_table(schema_table)
    return ".".join(f"`{part}`" for part in schema_table.split("."))


def validate_integer_param(value: int, param_name: str, min_value: int = 0) -> None:
    """
    Validate an integer parameter.

    Args:
        value: The value to validate
        param_name: Name of the parameter (for error messages)
        min_value: Minimum allowed value (default 0)

    Raises:
        ValueError: If the value is not an int or is below min_value
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{param_name} must be an integer, got {type(value).__name__}")

    if value < min_value:
        raise ValueError(f"{param_name} must be >= {min_value}, got {value}")
