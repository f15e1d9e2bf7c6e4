"""Tests for the early-stop heuristic."""

from unittest.mock import patch

from streamscribe.transcribe.early_stop import compression_ratio, should_stop_early
from streamscribe.transcribe.models import DecodingOptions, ProgressAction, TranscriptionProgress


class TestCompressionRatio:
    """Tests for compression_ratio."""

    def test_empty(self):
        assert compression_ratio([]) == 0.0

    def test_repetition_compresses_well(self):
        looping = [50257, 11, 290] * 40
        assert compression_ratio(looping) > 2.4

    def test_repetition_beats_varied_tokens(self):
        varied = list(range(1000, 1120, 1))
        looping = [1000, 1001] * 60
        assert compression_ratio(looping) > compression_ratio(varied)


class TestShouldStopEarly:
    """Tests for should_stop_early."""

    TOKENS = (1, 2, 3, 4, 5, 6)

    def options(self, **kwargs):
        kwargs.setdefault("log_prob_threshold", None)
        return DecodingOptions(**kwargs)

    def test_trailing_window_above_threshold_stops(self):
        ratio = compression_ratio(self.TOKENS[-5:])
        progress = TranscriptionProgress(text="abc", tokens=self.TOKENS)

        action = should_stop_early(progress, self.options(compression_ratio_threshold=ratio - 0.01), 5)

        assert action is ProgressAction.STOP_LOW_CONFIDENCE

    def test_trailing_window_below_threshold_continues(self):
        ratio = compression_ratio(self.TOKENS[-5:])
        progress = TranscriptionProgress(text="abc", tokens=self.TOKENS)

        action = should_stop_early(progress, self.options(compression_ratio_threshold=ratio + 0.01), 5)

        assert action is ProgressAction.CONTINUE

    def test_only_trailing_window_checked(self):
        progress = TranscriptionProgress(text="abc", tokens=self.TOKENS)
        with patch(
            "streamscribe.transcribe.early_stop.compression_ratio",
            return_value=1.0,
        ) as mock_ratio:
            should_stop_early(progress, self.options(), 5)

        mock_ratio.assert_called_once_with((2, 3, 4, 5, 6))

    def test_window_not_exceeded_skips_compression(self):
        progress = TranscriptionProgress(text="abc", tokens=self.TOKENS[:5])
        with patch("streamscribe.transcribe.early_stop.compression_ratio") as mock_ratio:
            action = should_stop_early(progress, self.options(compression_ratio_threshold=0.0), 5)

        mock_ratio.assert_not_called()
        assert action is ProgressAction.CONTINUE

    def test_no_compression_threshold_skips_check(self):
        progress = TranscriptionProgress(text="abc", tokens=(7,) * 100)
        action = should_stop_early(progress, self.options(compression_ratio_threshold=None), 60)
        assert action is ProgressAction.CONTINUE

    def test_degenerate_loop_stops_with_defaults(self):
        progress = TranscriptionProgress(text="la la la", tokens=(50257, 11, 290) * 40)
        action = should_stop_early(progress, DecodingOptions(), 60)
        assert action is ProgressAction.STOP_LOW_CONFIDENCE

    def test_low_logprob_stops(self):
        progress = TranscriptionProgress(text="abc", tokens=(1, 2), avg_logprob=-1.5)
        action = should_stop_early(progress, DecodingOptions(log_prob_threshold=-1.0), 60)
        assert action is ProgressAction.STOP_LOW_CONFIDENCE

    def test_logprob_checked_after_compression_passes(self):
        progress = TranscriptionProgress(text="abc", tokens=self.TOKENS, avg_logprob=-2.0)
        options = DecodingOptions(compression_ratio_threshold=100.0, log_prob_threshold=-1.0)

        assert should_stop_early(progress, options, 5) is ProgressAction.STOP_LOW_CONFIDENCE

    def test_good_logprob_continues(self):
        progress = TranscriptionProgress(text="abc", tokens=(1, 2), avg_logprob=-0.3)
        action = should_stop_early(progress, DecodingOptions(log_prob_threshold=-1.0), 60)
        assert action is ProgressAction.CONTINUE

    def test_missing_logprob_continues(self):
        progress = TranscriptionProgress(text="abc", tokens=(1, 2), avg_logprob=None)
        action = should_stop_early(progress, DecodingOptions(log_prob_threshold=-1.0), 60)
        assert action is ProgressAction.CONTINUE

    def test_no_logprob_threshold_continues(self):
        progress = TranscriptionProgress(text="abc", tokens=(1, 2), avg_logprob=-9.0)
        action = should_stop_early(progress, self.options(), 60)
        assert action is ProgressAction.CONTINUE
