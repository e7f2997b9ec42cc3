import json
from unittest.mock import patch

from click.testing import CliRunner

from visioninsights.ai.pipeline import VideoAnalysisPipeline
from visioninsights.base.description import AnalysisReport, SummaryReport
from visioninsights.cli import main
from visioninsights.exceptions import VideoDownloadError

ZERO_SCORES = {
    "crowd_diversity": {"age_group_variation": 0.0, "gender_distribution": 0.0, "ethnic_diversity": 0.0},
    "behavioral_diversity": {"movement_variation": 0.0, "activity_mix": 0.0, "group_vs_individual_ratio": 0.0},
    "environmental_diversity": {"location_type_variation": 0.0, "lighting_conditions": 0.0},
    "overall_diversity_score": 0.0,
}


class StaticFrameSource:
    def __init__(self, frames=(), error=None):
        self.frames = list(frames)
        self.error = error

    def extract_frames(self, video_reference):
        if self.error is not None:
            raise self.error
        return self.frames


def invoke(*args):
    return CliRunner().invoke(main, ["--log-level", "critical", *args])


class TestAnalyzeCommand:
    def test_prints_report(self):
        pipeline = VideoAnalysisPipeline(StaticFrameSource(), analyzer=None)

        with patch.object(VideoAnalysisPipeline, "from_settings", return_value=pipeline) as mock_build:
            result = invoke("analyze", "https://videos.test/a.mp4", "--vision-url", "https://vision.test/wf")

        assert result.exit_code == 0, result.output
        report = json.loads(result.output)
        assert report["success"] is True
        assert report["videoUrl"] == "https://videos.test/a.mp4"
        assert report["totalFrames"] == 0
        assert mock_build.call_args.kwargs == {"vision_api_url": "https://vision.test/wf"}

    def test_writes_report_file(self, tmp_path):
        pipeline = VideoAnalysisPipeline(StaticFrameSource(), analyzer=None)
        output = tmp_path / "report.json"

        with patch.object(VideoAnalysisPipeline, "from_settings", return_value=pipeline):
            result = invoke("analyze", "clip.mp4", "-o", str(output))

        assert result.exit_code == 0
        assert AnalysisReport.load(output).success

    def test_failed_run_exits_non_zero(self):
        pipeline = VideoAnalysisPipeline(StaticFrameSource(error=VideoDownloadError("HTTP 404")), analyzer=None)

        with patch.object(VideoAnalysisPipeline, "from_settings", return_value=pipeline):
            result = invoke("analyze", "https://videos.test/missing.mp4")

        assert result.exit_code == 1
        assert json.loads(result.output)["error"] == "HTTP 404"

    def test_missing_vision_endpoint(self):
        result = invoke("analyze", "clip.mp4")

        assert result.exit_code == 1
        assert "api_url is not configured" in result.output


class TestScoreCommand:
    def test_requires_exactly_one_source(self, tmp_path):
        report_path = tmp_path / "r.json"
        AnalysisReport(success=True, video_url="v").save(report_path)

        assert invoke("score").exit_code == 2
        assert invoke("score", "-s", "text", "-r", str(report_path)).exit_code == 2

    def test_scores_summary_text(self):
        result = invoke("score", "--summary", "Two people walk a dog.")

        assert result.exit_code == 0, result.output
        assert json.loads(result.output) == ZERO_SCORES

    def test_scores_report_summary(self, tmp_path):
        report_path = tmp_path / "report.json"
        AnalysisReport(
            success=True, video_url="v", summary_report=SummaryReport.success("A crowded market.")
        ).save(report_path)

        with patch.object(VideoAnalysisPipeline, "score_diversity", autospec=True) as mock_score:
            mock_score.return_value.to_dict.return_value = ZERO_SCORES
            result = invoke("score", "--report", str(report_path))

        assert result.exit_code == 0, result.output
        assert mock_score.call_args.args[1] == "A crowded market."

    def test_report_without_summary(self, tmp_path):
        report_path = tmp_path / "report.json"
        AnalysisReport.failure("v", "boom").save(report_path)

        result = invoke("score", "-r", str(report_path))

        assert result.exit_code == 1
        assert "has no summary" in result.output
