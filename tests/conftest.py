"""Pytest configuration and shared fixtures."""

import asyncio
import shutil
import tempfile
from datetime import datetime, timedelta
from pathlib import Path
from typing import Generator

import pytest

from common.config import Settings, load_settings
from common.models.benchmark import BenchmarkConfig, ExecutionOptions, Template
from common.models.connection import ConnectionInfo, DatabaseType
from common.models.metrics import FinalResult
from common.models.run import BenchmarkRecord


SYSBENCH_SUMMARY = """\
sysbench 1.0.20 (using bundled LuaJIT 2.1.0-beta2)

Running the test with following options:
Number of threads: 8
Report intermediate results every 1 second(s)

[ 1s ] thds: 8 tps: 1201.57 qps: 24047.35 (r/w/o: 16836.39/4806.30/2404.65) lat (ms,95%): 9.22 err/s: 0.00 reconn/s: 0.00
[ 2s ] thds: 8 tps: 1250.02 qps: 25001.40 (r/w/o: 17500.98/5000.28/2500.14) lat (ms,95%): 8.90 err/s: 0.00 reconn/s: 0.00
SQL statistics:
    queries performed:
        read:                            140000
        write:                           40000
        other:                           20000
        total:                           200000
    transactions:                        20000  (1234.56 per sec.)
    queries:                             200000 (12345.67 per sec.)
    ignored errors:                      0      (0.00 per sec.)
    reconnects:                          0      (0.00 per sec.)

General statistics:
    total time:                          16.2045s
    total number of events:              20000

Latency (ms):
         min:                                    3.23
         avg:                                    6.45
         max:                                   45.67
         95th percentile:                       12.34
         sum:                               129000.00

Threads fairness:
    events (avg/stddev):           2500.0000/0.00
    execution time (avg/stddev):   16.1995/0.00
"""

HAMMERDB_OUTPUT = """\
Vuser 1:Beginning rampup time of 1 minutes
3 Virtual Users Created with Monitor VU
Transaction Counter Started
0 MySQL tpm
60120 MySQL tpm
61980 MySQL tpm
Vuser 1:Test complete, Taking end Transaction Count.
Vuser 1:|neword|MIN-0.962|P50%-2.169|P95%-3.674|P99%-5.104|MAX-28.413|SAMPLES-12345
Vuser 1:TEST RESULT : System achieved 26340 NOPM from 61200 MySQL TPM
"""

SWINGBENCH_OUTPUT = """\
Author  :        Dominic Giles
Version :        2.6.0.1170

Time     Users       TPM      TPS     Errors
10:58:37 [0/4]       0        0       0
10:58:47 [4/4]       5400     90      0
10:58:57 [4/4]       6600     110     0
Completed Run.
<Overview>
    <TotalCompletedTransactions>12000</TotalCompletedTransactions>
    <TotalFailedTransactions>3</TotalFailedTransactions>
    <AverageTransactionsPerSecond>100.50</AverageTransactionsPerSecond>
</Overview>
"""

TPCC_OUTPUT = """\
***************************************
*** ###easy### TPC-C Load Generator ***
***************************************
<Parameters>
     [server]: 127.0.0.1
     [DBname]: tpcc
  [warehouse]: 10
 [connection]: 8
     [rampup]: 10 (sec.)
    [measure]: 20 (sec.)

MEASURING START.

  10, trx: 1000, 95%: 9.483, 99%: 18.738, max_rt: 213.169, 999|98.778, 100|101.096, 100|443.955, 101|670.842
  20, trx: 1200, 95%: 8.517, 99%: 16.262, max_rt: 180.002, 1199|88.100, 120|90.010, 120|400.000, 120|600.000

STOPPING THREADS........

<Raw Results>
  [0] sc:2100 lt:100  rt:0  fl:0 avg_rt: 4.0 (5)
  [1] sc:2190 lt:10  rt:0  fl:0 avg_rt: 1.2 (5)
  [2] sc:220 lt:0  rt:0  fl:0 avg_rt: 0.5 (5)
  [3] sc:220 lt:0  rt:0  fl:1 avg_rt: 9.1 (80)
  [4] sc:220 lt:0  rt:0  fl:0 avg_rt: 6.6 (20)
 in 20 sec.

<Raw Results2(sum ver.)>
  [0] sc:2100  lt:100  rt:0  fl:0
  [1] sc:2190  lt:10  rt:0  fl:0

<TpmC>
                 6600.000 TpmC
"""


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def settings() -> Settings:
    """Settings with fixed tool locations."""
    return load_settings(
        sysbench_path="sysbench",
        sysbench_script_dir="/usr/share/sysbench",
        hammerdb_path="hammerdbcli",
        swingbench_bin_dir="/opt/benchtools/swingbench/bin",
        sample_queue_size=10,
    )


@pytest.fixture
def mysql_connection() -> ConnectionInfo:
    return ConnectionInfo(
        name="local-mysql",
        database_type=DatabaseType.MYSQL,
        host="db.example.com",
        port=3306,
        username="bench",
        password="s3cr3t-pw",
        database="sbtest",
    )


@pytest.fixture
def postgres_connection() -> ConnectionInfo:
    return ConnectionInfo(
        name="local-pg",
        database_type=DatabaseType.POSTGRESQL,
        host="pg.example.com",
        port=5432,
        username="bench",
        password="s3cr3t-pw",
        database="bench",
    )


@pytest.fixture
def oracle_connection() -> ConnectionInfo:
    return ConnectionInfo(
        name="orcl",
        database_type=DatabaseType.ORACLE,
        host="ora.example.com",
        port=1521,
        username="soe",
        password="s3cr3t-pw",
        service_name="ORCLPDB1",
    )


@pytest.fixture
def make_config():
    """Factory for BenchmarkConfig instances."""
    def _make(connection=None, parameters=None, template=None, **options) -> BenchmarkConfig:
        return BenchmarkConfig(
            connection=connection,
            template=template or Template(id="sysbench-oltp-read-write", name="OLTP Read Write"),
            parameters=parameters or {},
            options=ExecutionOptions(**options),
            work_dir="/tmp/bench",
        )
    return _make


@pytest.fixture
def make_record():
    """Factory for BenchmarkRecord instances from a few headline figures."""
    start = datetime(2024, 1, 15, 10, 0, 0)
    counter = {"n": 0}

    def _make(
        threads: int,
        tps: float,
        p95: float = 10.0,
        queries_per_tx: int = 20,
        duration: float = 60.0,
        errors: int = 0,
        reconnects: int = 0,
        template: str = "oltp_read_write",
        database: str = "mysql",
        connection: str = None,
    ) -> BenchmarkRecord:
        counter["n"] += 1
        transactions = int(tps * duration)
        total = transactions * queries_per_tx
        read = int(total * 0.7)
        write = int(total * 0.2)
        result = FinalResult(
            total_transactions=transactions,
            transactions_per_sec=tps,
            total_queries=total,
            queries_per_sec=total / duration,
            read_queries=read,
            write_queries=write,
            other_queries=total - read - write,
            ignored_errors=errors,
            reconnects=reconnects,
            latency_min=1.0,
            latency_avg=p95 / 2,
            latency_max=p95 * 4,
            latency_p95=p95,
            latency_p99=p95 * 1.5,
            total_time=duration,
        )
        return BenchmarkRecord.from_final_result(
            result,
            template_name=template,
            database_type=database,
            threads=threads,
            connection_name=connection,
            run_id=f"run-{counter['n']}",
            start_time=start + timedelta(minutes=counter["n"]),
        )
    return _make


@pytest.fixture
def sysbench_output() -> str:
    return SYSBENCH_SUMMARY


@pytest.fixture
def hammerdb_output() -> str:
    return HAMMERDB_OUTPUT


@pytest.fixture
def swingbench_output() -> str:
    return SWINGBENCH_OUTPUT


@pytest.fixture
def tpcc_output() -> str:
    return TPCC_OUTPUT


@pytest.fixture
def make_stream():
    """Factory for StreamReaders pre-fed with text; call inside a running loop."""
    def _make(text: str, eof: bool = True) -> asyncio.StreamReader:
        reader = asyncio.StreamReader()
        reader.feed_data(text.encode("utf-8"))
        if eof:
            reader.feed_eof()
        return reader
    return _make
