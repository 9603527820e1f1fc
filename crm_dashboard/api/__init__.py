"""HTTP facade over the aggregation services."""
