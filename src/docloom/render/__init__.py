"""Document rendering."""

from docloom.render.renderer import marker_paths, render_html, sidecar_path, write_document

__all__ = ["marker_paths", "render_html", "sidecar_path", "write_document"]
