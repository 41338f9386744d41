"""Core upload pipeline: parse, inspect, group, dedup, publish."""
