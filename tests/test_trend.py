from __future__ import annotations

import unittest

from mareatigre.trend import compute_trend, reference_height


def _samples(*heights):
    return [{"altura": h, "hora": None, "timestamp": ""} for h in heights]


class TrendTests(unittest.TestCase):
    def test_fewer_than_two_samples_is_stable(self) -> None:
        for samples in ([], _samples(1.2)):
            trend = compute_trend(samples)
            self.assertEqual(trend["tendencia"], "estable")
            self.assertEqual(trend["tendencia_label"], "ESTABLE")
            self.assertEqual(trend["cambio"], 0)
            self.assertEqual(trend["cambio_formatted"], "±0,00 m")

    def test_skips_duplicates_when_looking_back(self) -> None:
        heights = [1.00, 1.00, 1.00, 1.03]
        self.assertEqual(reference_height(heights), 1.00)
        trend = compute_trend(_samples(*heights))
        self.assertEqual(trend["tendencia"], "subiendo")
        self.assertEqual(trend["tendencia_label"], "SUBIENDO")
        self.assertAlmostEqual(trend["cambio"], 0.03)
        self.assertEqual(trend["cambio_formatted"], "+0,03 m")

    def test_reference_is_most_recent_different_value(self) -> None:
        # 1.10 is closer in time than 1.40 and differs from the current 1.20
        self.assertEqual(reference_height([1.40, 1.10, 1.20, 1.20]), 1.10)

    def test_all_equal_falls_back_to_oldest(self) -> None:
        self.assertEqual(reference_height([0.90, 0.90, 0.90]), 0.90)
        trend = compute_trend(_samples(0.90, 0.90, 0.90))
        self.assertEqual(trend["tendencia"], "estable")

    def test_near_duplicates_within_noise_floor_are_skipped(self) -> None:
        self.assertEqual(reference_height([1.50, 1.2005, 1.20]), 1.50)

    def test_falling(self) -> None:
        trend = compute_trend(_samples(1.50, 1.45, 1.40))
        self.assertEqual(trend["tendencia"], "bajando")
        self.assertEqual(trend["tendencia_label"], "BAJANDO")
        self.assertAlmostEqual(trend["cambio"], -0.05)
        self.assertEqual(trend["cambio_formatted"], "-0,05 m")

    def test_change_at_threshold_is_stable(self) -> None:
        for heights in ((1.00, 1.00, 1.02), (1.02, 1.02, 1.00), (1.00, 1.01, 1.01)):
            trend = compute_trend(_samples(*heights))
            self.assertEqual(trend["tendencia"], "estable", heights)
            self.assertEqual(trend["cambio_formatted"], "±0,00 m")

    def test_sign_matches_last_difference(self) -> None:
        cases = [
            ((0.5, 0.7, 1.0), "subiendo"),
            ((1.0, 0.8, 0.7), "bajando"),
            ((2.0, 2.0, 2.5), "subiendo"),
            ((2.0, 2.1, 1.5), "bajando"),
        ]
        for heights, expected in cases:
            self.assertEqual(compute_trend(_samples(*heights))["tendencia"], expected, heights)

    def test_two_samples(self) -> None:
        trend = compute_trend(_samples(1.00, 1.10))
        self.assertEqual(trend["tendencia"], "subiendo")
        self.assertEqual(trend["cambio_formatted"], "+0,10 m")

    def test_malformed_sample_is_error(self) -> None:
        trend = compute_trend([{"altura": 1.0}, {"hora": "14:00"}])
        self.assertEqual(trend["tendencia"], "error")
        self.assertEqual(trend["tendencia_label"], "ERROR")
        self.assertEqual(trend["cambio_formatted"], "- m")

    def test_string_heights_are_accepted(self) -> None:
        trend = compute_trend([{"altura": "1.00"}, {"altura": "1.05"}])
        self.assertEqual(trend["tendencia"], "subiendo")


if __name__ == "__main__":
    unittest.main()
