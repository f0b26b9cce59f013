# Workflow nodes
from .load_inputs import load_config_node, load_sections_node
from .grade_sections import grade_sections_node
from .sequence_items import sequence_items_node
from .price_rows import price_rows_node
from .generate_report import generate_report_node

__all__ = [
    "load_config_node",
    "load_sections_node",
    "grade_sections_node",
    "sequence_items_node",
    "price_rows_node",
    "generate_report_node",
]
