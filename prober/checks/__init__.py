"""Concrete probers — HTTP and DNS checks."""

from .base import NotifyingProber
from .dns import DnsProber, MxRecord, new_dns_probe
from .web import WebProber, new_web_probe
