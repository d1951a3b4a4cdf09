import re

# greedy up to the last '@' before any query string, passwords may hold '/'
_CREDENTIALS_PATTERN = re.compile(r"//[^?#]*@")


def redact_connection(connection: str | None) -> str | None:
    """Replace the credentials of a connection string with '***'"""
    if connection is None:
        return None
    return _CREDENTIALS_PATTERN.sub("//***@", connection)


def split_csv(value: str | None) -> tuple[str, ...]:
    if not value:
        return ()
    return tuple(item.strip() for item in value.split(",") if item.strip())
