from .sql import SQLAssetRegistry, SQLLedger, SQLRandomnessOracle

__all__ = ["SQLAssetRegistry", "SQLLedger", "SQLRandomnessOracle"]
