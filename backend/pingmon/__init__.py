"""pingmon - ICMP latency/loss monitor with file and Splunk HEC output."""

__version__ = "1.0.0"
