from instrbench.protocols.profiler import Profiler

__all__ = ["Profiler"]
