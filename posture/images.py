from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO

from PIL import Image, ImageOps


@dataclass(frozen=True)
class NormalizedImage:
	"""
	An RGB image that is upright (EXIF orientation applied) and no larger than the
	analysis bound on its longest side.

	Keypoint detection, metric extraction and skeleton rendering only accept this type,
	so the overlay is drawn on exactly the pixels whose geometry produced the score.
	Build it with normalize_image(); do not construct directly.
	"""

	image: Image.Image

	@property
	def width(self) -> int:
		return int(self.image.width)

	@property
	def height(self) -> int:
		return int(self.image.height)

	@property
	def size(self) -> tuple[int, int]:
		return (self.width, self.height)


def normalize_image(image: Image.Image, max_dimension: int = 1080) -> NormalizedImage:
	"""
	Apply EXIF orientation, convert to RGB, then downsample (never upscale) so that
	max(width, height) <= max_dimension, keeping the aspect ratio.
	"""
	upright = ImageOps.exif_transpose(image)
	if upright is None:
		upright = image
	if upright.mode != "RGB":
		upright = upright.convert("RGB")

	w, h = upright.size
	longest = max(w, h)
	if max_dimension > 0 and longest > max_dimension:
		scale = float(max_dimension) / float(longest)
		new_size = (max(1, int(round(w * scale))), max(1, int(round(h * scale))))
		upright = upright.resize(new_size, Image.Resampling.LANCZOS)
	elif upright is image:
		# Never hand out the caller's mutable image object.
		upright = upright.copy()
	return NormalizedImage(image=upright)


def decode_image(data: bytes) -> Image.Image:
	im = Image.open(BytesIO(data))
	im.load()
	return im


def encode_jpeg(image: Image.Image, quality: int = 85) -> bytes:
	buf = BytesIO()
	image.convert("RGB").save(buf, format="JPEG", quality=int(quality), optimize=True)
	return buf.getvalue()


def encode_png(image: Image.Image) -> bytes:
	buf = BytesIO()
	image.save(buf, format="PNG")
	return buf.getvalue()
