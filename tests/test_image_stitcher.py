from __future__ import annotations

import unittest
from unittest.mock import patch

import numpy as np

from scrollstitch.errors import NoFramesCapturedError, StitchingFailedError
from scrollstitch.image_stitcher import ImageStitcher, stitch_frames, to_pil
from synthetic import noise_canvas, scroll_pair


class ImageStitcherTests(unittest.TestCase):
    def test_two_frames_with_overlap(self) -> None:
        canvas, top, bottom = scroll_pair(overlap=100, height=500)

        stitched = stitch_frames([top, bottom])

        self.assertEqual(stitched.shape, (900, 120, 4))
        self.assertTrue(np.array_equal(stitched, canvas))

    def test_positions_follow_overlaps(self) -> None:
        canvas = noise_canvas(700, seed=4)
        frames = [canvas[0:300], canvas[200:500], canvas[400:700]]

        stitcher = ImageStitcher(frames)

        self.assertEqual(stitcher.overlaps(), [0, 100, 100])
        self.assertEqual(stitcher.positions(), [0, 200, 400])
        self.assertTrue(np.array_equal(stitcher.stitch(), canvas))

    def test_single_frame_passthrough(self) -> None:
        frame = noise_canvas(50, 40, seed=9)

        result = stitch_frames([frame])

        self.assertIs(result, frame)

    def test_empty_input_raises(self) -> None:
        with self.assertRaises(NoFramesCapturedError):
            stitch_frames([])

    def test_rgb_frames_produce_rgba(self) -> None:
        canvas, top, bottom = scroll_pair(overlap=60, height=200)
        stitched = stitch_frames([top[..., :3].copy(), bottom[..., :3].copy()])

        self.assertEqual(stitched.shape, (340, 120, 4))
        self.assertTrue(np.all(stitched[..., 3] == 255))

    def test_drawing_failure_is_wrapped(self) -> None:
        _, top, bottom = scroll_pair(overlap=60, height=200)
        with patch("scrollstitch.image_stitcher.to_rgba", side_effect=ValueError("broken")):
            with self.assertRaises(StitchingFailedError) as ctx:
                stitch_frames([top, bottom])
        self.assertIn("broken", str(ctx.exception))

    def test_to_pil(self) -> None:
        image = to_pil(noise_canvas(30, 20, seed=1))
        self.assertEqual(image.mode, "RGBA")
        self.assertEqual(image.size, (20, 30))


if __name__ == "__main__":
    unittest.main()
