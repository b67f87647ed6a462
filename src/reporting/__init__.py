from .processing_results import (
    PROCESSING_COLUMNS,
    build_result_row,
    read_processing_results,
    write_processing_results,
)
from .workbook import WORKBOOK_COLUMNS, WorkbookTransformer, write_workbook
