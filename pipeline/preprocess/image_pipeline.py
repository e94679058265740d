"""
Pillow image filters for OCR preparation.

Deskew searches rotation angles within the tolerance and keeps the one
whose horizontal projection profile has the highest variance (text lines
aligned with rows). Binarization uses Otsu's threshold over the grayscale
histogram.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List

from PIL import Image, ImageFilter, ImageOps

from pipeline.preprocess.options import PreprocessOptions

Step = Callable[[Image.Image], Image.Image]

DESKEW_ANALYSIS_WIDTH = 800
DESKEW_STEP_DEGREES = 0.5


def to_grayscale(image: Image.Image) -> Image.Image:
    return ImageOps.grayscale(image)


def denoise(image: Image.Image, radius: float) -> Image.Image:
    return image.filter(ImageFilter.GaussianBlur(radius=radius))


def enhance_contrast(image: Image.Image) -> Image.Image:
    if image.mode not in ("L", "RGB"):
        image = image.convert("RGB")
    return ImageOps.equalize(image)


def otsu_threshold(image: Image.Image) -> int:
    histogram = image.convert("L").histogram()
    total = sum(histogram)
    if total == 0:
        return 127

    sum_all = sum(i * count for i, count in enumerate(histogram))
    sum_background = 0.0
    weight_background = 0
    best_threshold = 0
    best_variance = -1.0

    for threshold, count in enumerate(histogram):
        weight_background += count
        if weight_background == 0:
            continue
        weight_foreground = total - weight_background
        if weight_foreground == 0:
            break

        sum_background += threshold * count
        mean_background = sum_background / weight_background
        mean_foreground = (sum_all - sum_background) / weight_foreground

        variance = weight_background * weight_foreground * (mean_background - mean_foreground) ** 2
        if variance > best_variance:
            best_variance = variance
            best_threshold = threshold

    return best_threshold


def binarize(image: Image.Image) -> Image.Image:
    gray = image.convert("L")
    threshold = otsu_threshold(gray)
    return gray.point(lambda p: 255 if p > threshold else 0, mode="L")


def _profile_variance(image: Image.Image) -> float:
    # One column, one pixel per row: the mean darkness of each row.
    rows = list(image.resize((1, image.height), Image.Resampling.BOX).tobytes())
    if not rows:
        return 0.0
    mean = sum(rows) / len(rows)
    return sum((r - mean) ** 2 for r in rows) / len(rows)


def estimate_skew(image: Image.Image, tolerance: float) -> float:
    gray = image.convert("L")
    if gray.width > DESKEW_ANALYSIS_WIDTH:
        ratio = DESKEW_ANALYSIS_WIDTH / gray.width
        gray = gray.resize((DESKEW_ANALYSIS_WIDTH, max(1, int(gray.height * ratio))))
    inverted = ImageOps.invert(gray)

    best_angle = 0.0
    best_score = _profile_variance(inverted)
    steps = int(tolerance / DESKEW_STEP_DEGREES)
    for i in range(-steps, steps + 1):
        angle = i * DESKEW_STEP_DEGREES
        if angle == 0:
            continue
        score = _profile_variance(inverted.rotate(angle, resample=Image.Resampling.BILINEAR, fillcolor=0))
        if score > best_score:
            best_score = score
            best_angle = angle
    return best_angle


def deskew(image: Image.Image, tolerance: float) -> Image.Image:
    angle = estimate_skew(image, tolerance)
    if angle == 0:
        return image
    fill = 255 if image.mode in ("L", "1") else (255,) * len(image.getbands())
    return image.rotate(angle, resample=Image.Resampling.BICUBIC, expand=True, fillcolor=fill)


class ImagePipeline:
    """An ordered list of filters applied to each image."""

    def __init__(self, steps: List[Step] = None, max_workers: int = 4):
        self.steps = list(steps or [])
        self.max_workers = max_workers

    @classmethod
    def from_options(cls, options: PreprocessOptions, max_workers: int = 4) -> "ImagePipeline":
        steps: List[Step] = []
        if options.grayscale:
            steps.append(to_grayscale)
        if options.deskew:
            steps.append(lambda img: deskew(img, options.deskew_tolerance))
        if options.denoise:
            steps.append(lambda img: denoise(img, options.denoise_radius))
        if options.enhance_contrast:
            steps.append(enhance_contrast)
        if options.binarize:
            steps.append(binarize)
        return cls(steps, max_workers=max_workers)

    def process(self, image: Image.Image) -> Image.Image:
        result = image
        for step in self.steps:
            result = step(result)
        return result

    def process_batch(self, images: List[Image.Image]) -> List[Image.Image]:
        """Process images concurrently; output order matches input order."""
        if not images:
            return []
        with ThreadPoolExecutor(max_workers=max(1, min(self.max_workers, len(images)))) as executor:
            return list(executor.map(self.process, images))
