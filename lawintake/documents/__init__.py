"""Legal document templating and generation."""

from .form_overlay import Form4Overlay, build_form4_data, pages_to_pdf
from .generators import GENERATORS, BuildContext
from .service import DocumentGenerationService, fill_docx_template
from .templates import (
    MissingTokenPolicy,
    FillResult,
    build_template_data,
    fill_template,
    format_claim_types_list,
    generate_children_block,
    render_template,
)

__all__ = [
    'Form4Overlay',
    'build_form4_data',
    'pages_to_pdf',
    'GENERATORS',
    'BuildContext',
    'DocumentGenerationService',
    'fill_docx_template',
    'MissingTokenPolicy',
    'FillResult',
    'build_template_data',
    'fill_template',
    'format_claim_types_list',
    'generate_children_block',
    'render_template',
]
