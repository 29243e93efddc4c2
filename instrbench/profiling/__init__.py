from instrbench.profiling.cachegrind import CachegrindProfiler, parse_cachegrind_output

__all__ = ["CachegrindProfiler", "parse_cachegrind_output"]
