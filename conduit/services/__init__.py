# Services package.
#
# Each module exposes a focused set of async functions that encapsulate
# business logic and database access for a single domain aggregate:
#
#   user_service     — registration, login, profile lookup, account update
#   article_service  — CRUD, list filters and feed for Article
#   comment_service  — comments on an Article
#   tag_service      — cached tag list
#
# All service functions accept an AsyncSession as their first argument
# so that the router layer controls the transaction boundary via the
# ``get_db`` dependency.  Follow/favorite edges are never written here;
# that is the job of ``conduit.relations``.
