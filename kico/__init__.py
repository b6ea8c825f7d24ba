"""kico -- shows which pods connect to a pod, from CoreDNS resolver logs."""

__version__ = "0.1.0"
