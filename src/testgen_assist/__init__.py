"""testgen-assist: LLM-driven generation of test plans, scenarios and BDD artifacts."""

__version__ = "0.1.0"
