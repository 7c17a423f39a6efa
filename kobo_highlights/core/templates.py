"""
Small Jinja-like template engine for note generation.

Supports:
- Variable substitution: {{variable}}
- Date filter: {{variable|date('FORMAT')}}
- Conditionals: {% if variable %}content{% endif %}
- Negated conditionals: {% if not variable %}content{% endif %}

Conditionals cannot be nested.
"""
import re
from typing import Any

from kobo_highlights.core.dates import format_date
from kobo_highlights.core.models import TemplateContext

CONDITIONAL_RE = re.compile(r'\{%\s*if\s+(not\s+)?(\w+)\s*%\}([\s\S]*?)\{%\s*endif\s*%\}')
VARIABLE_RE = re.compile(r"\{\{(\w+)(?:\|date\('([^']+)'\))?\}\}")


def is_truthy(value: Any) -> bool:
    """None, '' and 0 are falsy; everything else is truthy."""
    if value is None or value == '':
        return False
    if isinstance(value, (int, float)) and value == 0:
        return False
    return True


def stringify(value: Any) -> str:
    """String form of a context value. Integral floats print without '.0'."""
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def render_template(template: str, context: TemplateContext) -> str:
    """Renders conditionals first, then variables in a single left-to-right pass."""
    result = _process_conditionals(template, context)

    def substitute(match: re.Match) -> str:
        var_name, date_format = match.group(1), match.group(2)
        value = context.get(var_name)
        if value is None:
            return ''
        if date_format is not None:
            return format_date(stringify(value), date_format)
        return stringify(value)

    return VARIABLE_RE.sub(substitute, result)


def _process_conditionals(template: str, context: TemplateContext) -> str:
    def resolve(match: re.Match) -> str:
        negated, var_name, content = match.groups()
        has_value = is_truthy(context.get(var_name))
        show = not has_value if negated else has_value
        return content if show else ''

    return CONDITIONAL_RE.sub(resolve, template)


DEFAULT_TEMPLATES = {
    'file_name': '{{title}}',

    'frontmatter': """---
title: "{{title}}"
author: "{{author}}"
progress: {{progress}}
{% if pages %}pages: {{pages}}
{% endif %}last_read: "{{date_last_read}}"
source: kobo
imported: "{{date}}"
---""",

    'page_metadata': """# {{title}}

**Author:** {{author}}
{% if progress %}**Progress:** {{progress}}%{% endif %}

## Highlights""",

    'highlight': """> {{text}}

{% if annotation %}**Note:** {{annotation}}

{% endif %}*— {{date_created|date('DD MMMM YYYY')}}{% if location %} · {{location}}%{% endif %}*

---""",

    # Shown above highlights added by a later sync
    'sync_header': """
## New Highlights ({{date|date('DD MMMM YYYY')}})""",
}
