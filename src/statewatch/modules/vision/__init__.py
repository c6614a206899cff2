from .template import (
    DEFAULT_THRESHOLD,
    TemplateHit,
    match_template,
)
from .utils import (
    ImageLike,
    load_image,
    resolve_template_path,
    crop,
)
from .locator import TemplateLocator, ReplayLocator

__all__ = [
    "DEFAULT_THRESHOLD",
    "TemplateHit",
    "match_template",
    "ImageLike",
    "load_image",
    "resolve_template_path",
    "crop",
    "TemplateLocator",
    "ReplayLocator",
]
