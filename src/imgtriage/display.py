"""
Image Display Module.

This module handles rendering images on the Tkinter canvas: fitting them to
the window, rotating them, and robustly creating PhotoImage objects. The
`TkDisplay` class is the in-process display surface a session shows its
images on.
"""

import tkinter as tk
from PIL import Image, ImageTk
import base64
import io
import logging
from pathlib import Path
from typing import cast

logger = logging.getLogger(__name__)


def resize_image(image: Image.Image, target_width: int, target_height: int) -> Image.Image:
    """
    Resizes a PIL Image to fit within target dimensions while maintaining aspect ratio.

    Args:
        image (Image.Image): The original PIL Image object.
        target_width (int): The maximum width for the resized image.
        target_height (int): The maximum height for the resized image.

    Returns:
        Image.Image: The resized PIL Image. Returns a copy if resizing fails.
    """
    if target_width <= 0 or target_height <= 0:
        logger.warning(f"Resize_image: Invalid target dimensions ({target_width}x{target_height}).")
        return image.copy()

    original_width, original_height = image.width, image.height
    if original_width == 0 or original_height == 0:
        logger.warning(f"Resize_image: Invalid original image dimensions ({original_width}x{original_height}).")
        return image.copy()

    image_aspect_ratio = original_width / original_height
    target_aspect_ratio = target_width / target_height

    new_width, new_height = target_width, target_height
    if image_aspect_ratio > target_aspect_ratio:
        new_height = int(new_width / image_aspect_ratio)
    else:
        new_width = int(new_height * image_aspect_ratio)

    new_width = max(1, new_width)
    new_height = max(1, new_height)

    try:
        return image.resize((new_width, new_height), Image.Resampling.LANCZOS)
    except Exception as e:
        logger.error(f"Error during image resize: {e}")
        return image.copy()


def shrink_to_fit(image: Image.Image, target_width: int, target_height: int) -> Image.Image:
    """Like `resize_image`, but never enlarges an image smaller than the target."""
    if image.width <= target_width and image.height <= target_height:
        return image
    return resize_image(image, target_width, target_height)


def rotate_image(image: Image.Image, degrees: int) -> Image.Image:
    """Rotate clockwise by a multiple of 90 degrees."""
    degrees %= 360
    if degrees == 0:
        return image
    transpose = {
        90: Image.Transpose.ROTATE_270,
        180: Image.Transpose.ROTATE_180,
        270: Image.Transpose.ROTATE_90,
    }[degrees]
    return image.transpose(transpose)


def to_rgb(image: Image.Image) -> Image.Image:
    """Convert to RGB, flattening transparency onto a white background."""
    if image.mode == 'RGB':
        return image
    if image.mode in ('RGBA', 'LA', 'P') and (image.mode != 'P' or 'transparency' in image.info):
        rgba = image.convert('RGBA')
        background = Image.new('RGB', image.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.split()[-1])
        return background
    return image.convert('RGB')


def create_photoimage_robust(image: Image.Image) -> tk.PhotoImage | None:
    """
    Creates a tk.PhotoImage from a PIL Image, falling back to an in-memory PNG.

    Returns:
        tk.PhotoImage | None: The created PhotoImage, or None if all methods fail.
    """
    if image.width <= 0 or image.height <= 0:
        logger.error(f"Invalid image dimensions: {image.width}x{image.height}")
        return None

    image = to_rgb(image)
    try:
        return cast(tk.PhotoImage, ImageTk.PhotoImage(image))
    except Exception as e1:
        logger.warning(f"ImageTk.PhotoImage failed: {e1}. Trying BytesIO fallback.")
        try:
            with io.BytesIO() as bio:
                image.save(bio, format='PNG')
                return tk.PhotoImage(data=base64.b64encode(bio.getvalue()))
        except Exception as e2:
            logger.error(f"All PhotoImage creation methods failed. Last error: {e2}")
            return None


def display_static_image(canvas: tk.Canvas, image: Image.Image) -> tk.PhotoImage | None:
    """
    Displays a static PIL image centered on the canvas.

    Returns:
        tk.PhotoImage | None: The reference to the created PhotoImage to prevent
                              garbage collection, or None on failure.
    """
    photo = create_photoimage_robust(image)
    canvas.delete("image", "summary", "message")
    if photo:
        canvas.create_image(
            canvas.winfo_width() // 2, canvas.winfo_height() // 2,
            image=photo, anchor=tk.CENTER, tags="image"
        )
    else:
        logger.error("Failed to create PhotoImage for static display.")
        show_message(canvas, "Error displaying image", fill="red")
    return photo


def show_message(canvas: tk.Canvas, text: str, fill: str = "white") -> None:
    canvas.delete("message")
    canvas.create_text(
        canvas.winfo_width() // 2, canvas.winfo_height() // 2,
        text=text, fill=fill, font=("Helvetica", 16), tags="message"
    )


class TkDisplay:
    """
    Display surface drawing one image at a time on a Tkinter canvas.

    Rotation applies to the image on screen and is reset when another file
    is shown. In fit mode images are scaled to the window, otherwise they are
    only shrunk when larger than it.
    """

    def __init__(self, canvas: tk.Canvas):
        self.canvas = canvas
        self.path: Path | None = None
        self.rotation = 0
        self.fit = True
        self._image: Image.Image | None = None
        self._photo_ref: tk.PhotoImage | None = None

    def is_live(self) -> bool:
        try:
            return bool(self.canvas.winfo_exists())
        except tk.TclError:
            return False

    def close_if_open_elsewhere(self, path: Path) -> None:
        """Drop the decoded copy of `path` so the next show reads the file again."""
        if self._image is not None and self.path == path:
            self._image.close()
            self._image = None

    def show_image(self, path: Path) -> None:
        if path != self.path:
            self.rotation = 0
            if self._image is not None:
                self._image.close()
            self._image = None
        self.path = path
        self.render()

    def render(self) -> None:
        if self.path is None:
            return
        try:
            if self._image is None:
                opened = Image.open(self.path)
                opened.load()
                self._image = to_rgb(opened)
        except (FileNotFoundError, OSError) as e:
            logger.error(f"Error displaying image '{self.path.name}': {e}")
            self.canvas.delete("image", "summary")
            show_message(self.canvas, f"Cannot display {self.path.name}", fill="red")
            self._photo_ref = None
            return

        width, height = self.canvas.winfo_width(), self.canvas.winfo_height()
        image = rotate_image(self._image, self.rotation)
        if width > 1 and height > 1:
            image = resize_image(image, width, height) if self.fit else shrink_to_fit(image, width, height)
        self._photo_ref = display_static_image(self.canvas, image)

    def rotate(self, degrees: int = 90) -> None:
        self.rotation = (self.rotation + degrees) % 360
        logger.info(f"Rotation set to {self.rotation} degrees.")
        self.render()

    def toggle_fit(self) -> bool:
        self.fit = not self.fit
        logger.info(f"Fit to window {'enabled' if self.fit else 'disabled'}.")
        self.render()
        return self.fit
