from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"

# Initialize templates once
templates = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)


def render_email(name: str, **context) -> str:
    return templates.get_template(f"email/{name}").render(**context)


def render_product_description(name: str, **context) -> str:
    return templates.get_template(f"products/{name}").render(**context)
