"""
Template matching utilities.

Single best match of a template inside an image (top-left origin). The score
is the normalized correlation; a hit below threshold is reported as None.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import cv2  # type: ignore
import numpy as np

from .utils import ImageLike, load_image


DEFAULT_THRESHOLD = 0.85


@dataclass
class TemplateHit:
    x: int
    y: int
    w: int
    h: int
    score: float


def fits(big: np.ndarray, small: np.ndarray) -> bool:
    hb, wb = big.shape[:2]
    hs, ws = small.shape[:2]
    return hs <= hb and ws <= wb


def match_template(
    image: ImageLike,
    template: ImageLike,
    *,
    threshold: Optional[float] = None,
    method: int = cv2.TM_CCOEFF_NORMED,
) -> Optional[TemplateHit]:
    """Find the best match location for template in image.

    Returns None when the best score is below threshold or the template does
    not fit inside the image.
    """
    thr = DEFAULT_THRESHOLD if threshold is None else float(threshold)
    img = load_image(image)
    tpl = load_image(template)
    if not fits(img, tpl):
        return None

    res = cv2.matchTemplate(img, tpl, method)
    min_val, max_val, min_loc, max_loc = cv2.minMaxLoc(res)

    if method in (cv2.TM_SQDIFF, cv2.TM_SQDIFF_NORMED):
        # lower is better
        score = 1.0 - float(min_val)
        x, y = min_loc
    else:
        score = float(max_val)
        x, y = max_loc

    if score < thr:
        return None
    h, w = tpl.shape[:2]
    return TemplateHit(x=int(x), y=int(y), w=int(w), h=int(h), score=min(max(score, 0.0), 1.0))


__all__ = ["DEFAULT_THRESHOLD", "TemplateHit", "fits", "match_template"]
