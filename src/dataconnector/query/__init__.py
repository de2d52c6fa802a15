from .binding import PreparedStatement, prepare_statement, procedure_call
from .connector import Connector, ExecutionResult
from .parameters import (
    BindingKind,
    Parameters,
    QueryParameter,
    binary_parameter,
    image_parameter,
    output_parameter,
    xml_parameter,
)

__all__ = [
    "BindingKind",
    "Connector",
    "ExecutionResult",
    "Parameters",
    "PreparedStatement",
    "QueryParameter",
    "binary_parameter",
    "image_parameter",
    "output_parameter",
    "prepare_statement",
    "procedure_call",
    "xml_parameter",
]
