"""
Tests for Logging, Visualization and the Demo CLI
==================================================
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from unittest.mock import patch

import numpy as np
import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from conftest import make_frame
from gesture_arcade import main as demo
from gesture_arcade.capture.devices import CameraOption
from gesture_arcade.core.types import TrackingSnapshot
from gesture_arcade.tracking.preview import PreviewEncoder
from gesture_arcade.utils.logger import setup_logging
from gesture_arcade.utils.performance import PerformanceMetrics
from gesture_arcade.utils.visualization import Visualizer, VisualizerConfig


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    absl_level = logging.getLogger("absl").level
    yield
    for handler in root.handlers:
        handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger("absl").setLevel(absl_level)


class TestSetupLogging:

    def test_console_only(self, restore_root_logger):
        root = setup_logging(level="debug")

        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1

    def test_rotating_file(self, tmp_path, restore_root_logger):
        log_file = tmp_path / "logs" / "tracking.log"
        root = setup_logging(log_file=str(log_file), max_size_mb=1, backup_count=2)

        file_handlers = [h for h in root.handlers
                         if isinstance(h, logging.handlers.RotatingFileHandler)]
        assert len(file_handlers) == 1
        assert file_handlers[0].maxBytes == 1024 * 1024
        assert file_handlers[0].backupCount == 2
        assert file_handlers[0].level == logging.DEBUG
        assert root.level == logging.DEBUG
        console = [h for h in root.handlers if h not in file_handlers]
        assert console[0].level == logging.INFO
        assert log_file.parent.is_dir()

    def test_mediapipe_chatter_is_quieted(self, restore_root_logger):
        setup_logging(level="DEBUG")
        assert logging.getLogger("absl").level == logging.WARNING


class TestVisualizer:
    """Test suite for the debug overlay."""

    @pytest.fixture
    def visualizer(self):
        return Visualizer(VisualizerConfig(canvas_size=(160, 90)))

    def test_blank_canvas_without_preview(self, visualizer):
        image = visualizer.decode_preview(TrackingSnapshot())
        assert image.shape == (90, 160, 3)

    def test_decodes_preview(self, visualizer):
        preview = PreviewEncoder().encode(make_frame(0.0, width=64, height=36))
        image = visualizer.decode_preview(TrackingSnapshot(frame=preview, ready=True))
        assert image.shape == (36, 64, 3)

    def test_cursor_drawn_at_point(self, visualizer):
        snapshot = TrackingSnapshot(x=0.5, y=0.5, gesture="point", ready=True)
        image = visualizer.render(snapshot, PerformanceMetrics(fps=30.0))

        assert image[44:46, 79:81].any()

    def test_no_cursor_without_point(self):
        visualizer = Visualizer(VisualizerConfig(canvas_size=(160, 90), show_status=False))
        image = visualizer.render(TrackingSnapshot(ready=True))
        assert not np.any(image)

    def test_from_dict(self):
        config = VisualizerConfig.from_dict({"show_fps": False, "colors": {"point": [1, 2, 3]}})
        assert not config.show_fps
        assert config.point_color == (1, 2, 3)


class TestDemoCli:

    def test_list_cameras(self, capsys, restore_root_logger):
        options = [CameraOption("0", "Integrated Webcam")]
        with patch.object(demo, "detect_camera_options", return_value=options):
            assert demo.main(["--list-cameras"]) == 0

        assert "Integrated Webcam" in capsys.readouterr().out

    def test_start_failure_exit_code(self, tmp_path, restore_root_logger):
        failed = TrackingSnapshot(error="Unable to access the selected camera.")
        with patch.object(demo.signal, "signal"), \
                patch.object(demo.TrackingController, "select_device", return_value=failed), \
                patch.object(demo.TrackingController, "close") as close:
            code = demo.main(["--no-window", "--config", str(tmp_path / "missing.yaml")])

        assert code == 1
        close.assert_called_once()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
