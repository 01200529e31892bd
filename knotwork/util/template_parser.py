from jinja2 import DebugUndefined, Environment
from jinja2.exceptions import TemplateError
import logging

logger = logging.getLogger(__name__)

# Unknown names render back as "{{ name }}" instead of an empty string
env = Environment(undefined=DebugUndefined)


def template_parse(template, params):
    t = env.from_string(template)
    o = t.render(params)
    return o


def render_value(value, params):
    """
    Render every string inside ``value`` (str, dict, list) as a template.

    Strings without a placeholder are returned untouched. A string that
    fails to parse is logged and kept verbatim.
    """
    if isinstance(value, str):
        if '{{' not in value:
            return value
        try:
            return template_parse(value, params)
        except TemplateError as e:
            logger.warning("Template %r could not be rendered: %s", value, e)
            return value
    if isinstance(value, dict):
        return {k: render_value(v, params) for k, v in value.items()}
    if isinstance(value, list):
        return [render_value(v, params) for v in value]
    return value


def render_fields(data, fields, params):
    """Copy of ``data`` with the named ``fields`` rendered."""
    rendered = dict(data)
    for name in fields:
        if name in rendered:
            rendered[name] = render_value(rendered[name], params)
    return rendered
