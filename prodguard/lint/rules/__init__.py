"""Built-in lint rules. Importing this package registers them."""
from prodguard.lint.rules.no_guarded_throw import NoGuardedThrow
from prodguard.lint.rules.consistent_production_guard import ConsistentProductionGuard
from prodguard.lint.rules.require_dev_wrapper import RequireDevWrapper

__all__ = ["NoGuardedThrow", "ConsistentProductionGuard", "RequireDevWrapper"]
