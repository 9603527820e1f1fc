"""Row store access: pooled async engine and SQL helpers."""
