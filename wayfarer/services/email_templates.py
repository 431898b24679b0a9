"""Email template rendering (Jinja2, templates under ``wayfarer/templates``)."""

from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

PRICE_DROP_TEMPLATE = "price_drop.html"
CONTACT_US_TEMPLATE = "contact_us.html"

_env = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html", "xml"]),
)


def render_template(template_name: str, **context) -> str:
    return _env.get_template(template_name).render(**context)
