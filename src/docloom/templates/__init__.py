"""Document templates."""

from docloom.templates.registry import TemplateError, TemplateRegistry, load_template_dir

__all__ = ["TemplateError", "TemplateRegistry", "load_template_dir"]
