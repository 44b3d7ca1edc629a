"""Ensures every ORM model is imported before table creation."""

_models_registered = False


def register_all_models() -> None:
    """Import all ORM model modules to register them with Base.metadata.

    Idempotent; must run before ``create_all`` or ``drop_all``.
    """
    global _models_registered

    if _models_registered:
        return

    from agentmarket.storage import orm as _  # noqa: F401

    _models_registered = True
