"""Result records, output sinks and summaries."""

from deerpop.output.records import HEADER, RECORD_DTYPE, ResultRecord, output_path, read_binary_records
from deerpop.output.sink import BinaryResultSink, CsvResultSink, ResultSink, open_sink
from deerpop.output.summary import load_records, summarize_records

__all__ = [
    "HEADER",
    "RECORD_DTYPE",
    "ResultRecord",
    "output_path",
    "read_binary_records",
    "BinaryResultSink",
    "CsvResultSink",
    "ResultSink",
    "open_sink",
    "load_records",
    "summarize_records",
]
