from unittest import TestCase

from filesphere.models import FileRecord
from filesphere.services.visibility import LodThresholds, query, tier_for


def _at(file_id: str, position) -> FileRecord:
    return FileRecord(
        id=file_id,
        name=file_id,
        absolute_path=f"/r/{file_id}",
        extension="",
        size=1,
        created_at="2024-01-01T00:00:00.000Z",
        position=position,
    )


class VisibilityQueryTests(TestCase):
    def test_range_and_order(self):
        records = [_at("far", (500.0, 0.0, 0.0)), _at("mid", (0.0, 50.0, 0.0)), _at("near", (0.0, 0.0, 5.0))]
        result = query(records, (0, 0, 0), 100)
        self.assertEqual(result.ids(), ["near", "mid"])
        self.assertEqual([vf.distance for vf in result.files], [5.0, 50.0])

    def test_view_distance_is_inclusive(self):
        result = query([_at("edge", (100.0, 0.0, 0.0))], (0, 0, 0), 100)
        self.assertEqual(result.ids(), ["edge"])

    def test_unpositioned_records_are_excluded(self):
        result = query([_at("nowhere", None), _at("here", (1.0, 0.0, 0.0))], (0, 0, 0), 10)
        self.assertEqual(result.ids(), ["here"])

    def test_tiers_with_boundaries_in_the_higher_tier(self):
        th = LodThresholds(mid=25, far=60)
        self.assertEqual(tier_for(24.999, th), "near")
        self.assertEqual(tier_for(25.0, th), "mid")
        self.assertEqual(tier_for(59.9, th), "mid")
        self.assertEqual(tier_for(60.0, th), "far")

        records = [_at("a", (10.0, 0, 0)), _at("b", (25.0, 0, 0)), _at("c", (60.0, 0, 0)), _at("d", (200.0, 0, 0))]
        result = query(records, (0, 0, 0), 600, th)
        groups = result.by_tier()
        self.assertEqual([vf.record.id for vf in groups["near"]], ["a"])
        self.assertEqual([vf.record.id for vf in groups["mid"]], ["b"])
        self.assertEqual([vf.record.id for vf in groups["far"]], ["c", "d"])
        self.assertEqual(result.counts(), {"near": 1, "mid": 1, "far": 2})
        self.assertEqual([vf.lod for vf in result.files], ["preview", "icon", "point", "point"])

    def test_ties_break_by_id(self):
        records = [_at("zz", (0.0, 3.0, 0.0)), _at("aa", (3.0, 0.0, 0.0)), _at("mm", (0.0, 0.0, -3.0))]
        self.assertEqual(query(records, (0, 0, 0), 10).ids(), ["aa", "mm", "zz"])

    def test_viewpoint_moves(self):
        records = [_at("a", (0.0, 0.0, 0.0)), _at("b", (100.0, 0.0, 0.0))]
        self.assertEqual(query(records, (0, 0, 0), 10).ids(), ["a"])
        self.assertEqual(query(records, (95, 0, 0), 10).ids(), ["b"])

    def test_no_hidden_state(self):
        records = [_at("a", (1.0, 0.0, 0.0))]
        first = query(records, (0, 0, 0), 10)
        query([], (5, 5, 5), 1)
        self.assertEqual(query(records, (0, 0, 0), 10), first)

    def test_invalid_thresholds(self):
        with self.assertRaises(ValueError):
            LodThresholds(mid=50, far=10)
