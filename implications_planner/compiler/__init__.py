from implications_planner.compiler.discovery import load_discovery, parse_transitions
from implications_planner.compiler.mermaid import generate_mermaid
from implications_planner.compiler.parser import ImplicationCatalog, parse_implication, parse_implication_yaml
from implications_planner.compiler.validator import format_errors, validate_planner

__all__ = [
    "ImplicationCatalog",
    "format_errors",
    "generate_mermaid",
    "load_discovery",
    "parse_implication",
    "parse_implication_yaml",
    "parse_transitions",
    "validate_planner",
]
