"""GCPV export watcher: keeps a FinishLynx Lynx.evt file in step with registration exports."""

__version__ = "0.1.0"
