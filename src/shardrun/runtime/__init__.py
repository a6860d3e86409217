from .orchestrator import RunReport, SuiteOrchestrator

__all__ = ["RunReport", "SuiteOrchestrator"]
