"""
Vision utilities: image loading/decoding and cropping.
"""
from __future__ import annotations

import os
from typing import Optional, Tuple, Union

import cv2  # type: ignore
import numpy as np


ImageLike = Union[str, bytes, np.ndarray]

_IMAGE_PATH_CACHE: dict[str, np.ndarray] = {}


def load_image(img: ImageLike) -> np.ndarray:
    """Load an image into a BGR numpy array.

    - str: treated as a file path and loaded via cv2.imread (cached)
    - bytes: decoded via cv2.imdecode
    - np.ndarray: returned as-is (assumed BGR or single-channel)
    """
    if isinstance(img, np.ndarray):
        return img
    if isinstance(img, (bytes, bytearray)):
        arr = np.frombuffer(img, dtype=np.uint8)
        mat = cv2.imdecode(arr, cv2.IMREAD_COLOR)
        if mat is None:
            raise ValueError("Failed to decode image bytes")
        return mat
    if isinstance(img, str):
        if img in _IMAGE_PATH_CACHE:
            return _IMAGE_PATH_CACHE[img]
        if not os.path.isfile(img):
            raise FileNotFoundError(f"Image file not found: {img}")
        mat = cv2.imread(img, cv2.IMREAD_COLOR)
        if mat is None:
            raise ValueError(f"Failed to load image from path: {img}")
        _IMAGE_PATH_CACHE[img] = mat
        return mat
    raise TypeError(f"Unsupported image type: {type(img)}")


def resolve_template_path(name: str, base_dir: str) -> str:
    """Map a template name like ``prompt/windows`` to a file under base_dir."""
    path = name if os.path.isabs(name) else os.path.join(base_dir, name)
    if not os.path.splitext(path)[1]:
        path += ".png"
    return path


def crop(img: np.ndarray, box: Optional[Tuple[int, int, int, int]]) -> Tuple[np.ndarray, int, int]:
    """Crop (x, y, w, h) clamped to the image. Returns (roi, offset_x, offset_y)."""
    if box is None:
        return img, 0, 0
    h_img, w_img = img.shape[:2]
    x, y, w, h = box
    x0 = max(0, min(x, w_img))
    y0 = max(0, min(y, h_img))
    x1 = max(x0, min(x + w, w_img))
    y1 = max(y0, min(y + h, h_img))
    return img[y0:y1, x0:x1], x0, y0


__all__ = ["ImageLike", "load_image", "resolve_template_path", "crop"]
