import unittest

import numpy as np

from catalogue import BodyKind
from labels import Camera, LabelAnchor, VisibilityFlags, declutter


def anchor(key, position, order=0):
    return LabelAnchor(key=key, world_position=np.array(position, dtype=float), order=order)


class TestCamera(unittest.TestCase):

    def setUp(self):
        self.camera = Camera(position=(0, 0, 100))

    def test_target_projects_to_centre(self):
        x, y, z, w = self.camera.project((0, 0, 0))
        self.assertAlmostEqual(x, 0.0)
        self.assertAlmostEqual(y, 0.0)
        self.assertGreater(w, 0)
        self.assertLess(z, 1)

    def test_right_and_up_map_to_positive_ndc(self):
        x, _, _, _ = self.camera.project((10, 0, 0))
        _, y, _, _ = self.camera.project((0, 10, 0))
        self.assertGreater(x, 0)
        self.assertGreater(y, 0)

    def test_point_behind_camera_has_negative_w(self):
        self.assertLessEqual(self.camera.project((0, 0, 200))[3], 0)

    def test_orbit_keeps_distance_to_target(self):
        self.camera.orbit(30, 45, 250)
        self.assertAlmostEqual(self.camera.distance_to(self.camera.target), 250)
        x, y, _, _ = self.camera.project((0, 0, 0))
        self.assertAlmostEqual(x, 0.0)
        self.assertAlmostEqual(y, 0.0)


class TestDeclutter(unittest.TestCase):

    def setUp(self):
        # Looking down -z from 100 units out, 1 unit across is roughly 0.014 in NDC.
        self.camera = Camera(position=(0, 0, 100))

    def test_separated_labels_both_visible(self):
        result = declutter([anchor("A", (0, 0, 0), 0), anchor("B", (50, 0, 0), 1)], self.camera)
        self.assertEqual(result, [("A", True), ("B", True)])

    def test_farther_label_hidden(self):
        result = declutter([anchor("Far", (1, 0, -5), 0), anchor("Near", (0, 0, 0), 1)], self.camera)
        self.assertEqual(result, [("Far", False), ("Near", True)])

    def test_equal_distance_goes_to_catalogue_order(self):
        result = declutter([anchor("Later", (1, 0, 0), 5), anchor("Earlier", (-1, 0, 0), 2)], self.camera)
        self.assertEqual(result, [("Later", False), ("Earlier", True)])

    def test_hidden_label_no_longer_competes(self):
        anchors = [anchor("A", (0, 0, 0), 0), anchor("B", (4, 0, 0), 1), anchor("C", (8, 0, 0), 2)]
        result = dict(declutter(anchors, self.camera))
        self.assertEqual(result, {"A": True, "B": False, "C": True})

    def test_behind_camera_and_past_far_plane_hidden(self):
        anchors = [anchor("Behind", (0, 0, 200), 0), anchor("Beyond", (0, 0, -2e6), 1),
                   anchor("Here", (30, 0, 0), 2)]
        self.assertEqual(declutter(anchors, self.camera),
                         [("Behind", False), ("Beyond", False), ("Here", True)])

    def test_threshold_is_configurable(self):
        anchors = [anchor("A", (0, 0, 0), 0), anchor("B", (50, 0, 0), 1)]
        self.assertEqual(dict(declutter(anchors, self.camera, threshold=2.0)), {"A": True, "B": False})

    def test_no_anchors(self):
        self.assertEqual(declutter([], self.camera), [])


class TestVisibilityFlags(unittest.TestCase):

    def test_defaults(self):
        flags = VisibilityFlags()
        self.assertTrue(flags.shows(BodyKind.PLANET))
        self.assertFalse(flags.shows(BodyKind.COMET))
        self.assertFalse(flags.show_labels)

    def test_star_always_shown_belt_never_labeled(self):
        flags = VisibilityFlags(show_planets=False, show_moons=False, show_spacecraft=False)
        self.assertTrue(flags.shows(BodyKind.STAR))
        self.assertFalse(flags.shows(BodyKind.BELT_PARTICLE))
        self.assertFalse(flags.shows(BodyKind.MOON))


if __name__ == '__main__':
    unittest.main()
