"""Benchmark tool adapters."""

from adapters.base import BenchmarkAdapter, resolve_phase
from adapters.hammerdb import HammerDBAdapter
from adapters.registry import AdapterRegistry, create_default_registry
from adapters.stream import LineParser, StreamCollection, StreamCollector
from adapters.swingbench import SwingbenchAdapter
from adapters.sysbench import SysbenchAdapter
from adapters.tpcc import TpccAdapter

__all__ = [
    "BenchmarkAdapter",
    "resolve_phase",
    "AdapterRegistry",
    "create_default_registry",
    "LineParser",
    "StreamCollection",
    "StreamCollector",
    "SysbenchAdapter",
    "HammerDBAdapter",
    "SwingbenchAdapter",
    "TpccAdapter",
]
