"""RPC procedures; importing this package registers all of them."""

from . import exchange, position, stock, transaction, user, watchlist  # noqa: F401
