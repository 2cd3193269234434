"""Lingua – Redis key factory for the document cache.

All cache keys MUST go through this module so invalidation can find them.

Key schema:
    lingua:{domain}:{identifier...}

Examples:
    lingua:doc:3f2a9c...:de
    lingua:languages
"""

PREFIX = "lingua"


def redis_key(*parts: str) -> str:
    """Build a namespaced Redis key.

    Args:
        *parts: Key path segments joined with ':'.

    Returns:
        Fully-qualified key string like 'lingua:doc:abc:de'.
    """
    if not parts:
        raise ValueError("redis_key requires at least one path part")
    return f"{PREFIX}:" + ":".join(str(p) for p in parts)


def document_key(project_id: str, language: str) -> str:
    return redis_key("doc", project_id, language)


def project_documents_pattern(project_id: str) -> str:
    return redis_key("doc", project_id, "*")


def languages_key() -> str:
    return redis_key("languages")
