# reconciler/routers/__init__.py

from reconciler.routers import health
from reconciler.routers import statements
from reconciler.routers import transactions
from reconciler.routers import reconcile
from reconciler.routers import evidence

__all__ = ["health", "statements", "transactions", "reconcile", "evidence"]
