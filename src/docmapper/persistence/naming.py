"""Index and document type names derived from model classes.

``PersistentArticle`` is stored in ``persistent_articles`` with document type
``persistent_article``.  A class nested in another class, or one declaring
``__namespace__``, is scoped by that namespace::

    class MyNamespace:
        class PersistentArticleInNamespace(PersistentModel): ...

    # index: my_namespace-persistent_article_in_namespaces
    # type:  my_namespace-persistent_article_in_namespace
"""

from __future__ import annotations

import inflection

NAMESPACE_SEPARATOR = "-"


def namespace_of(cls: type) -> list[str]:
    """Underscored namespace segments enclosing ``cls``."""
    explicit = getattr(cls, "__namespace__", None)
    if explicit:
        return [inflection.underscore(part) for part in explicit.split(".") if part]

    parts = cls.__qualname__.split(".")
    if "<locals>" in parts:
        # Classes defined inside functions are namespaced by their enclosing classes only
        parts = parts[len(parts) - parts[::-1].index("<locals>") :]
    return [inflection.underscore(part) for part in parts[:-1]]


def document_type_for(cls: type) -> str:
    """Singular, underscored type name, e.g. ``persistent_article``."""
    name = inflection.singularize(inflection.underscore(cls.__name__))
    return NAMESPACE_SEPARATOR.join([*namespace_of(cls), name])


def index_name_for(cls: type) -> str:
    """Plural, underscored index name, e.g. ``persistent_articles``."""
    name = inflection.pluralize(inflection.underscore(cls.__name__))
    return NAMESPACE_SEPARATOR.join([*namespace_of(cls), name])
