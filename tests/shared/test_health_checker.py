from unittest.mock import Mock, patch

import pytest
import requests

from src.entities.server import ServerProbe
from src.shared.health_checker import HealthChecker


class TestHealthChecker:
    @pytest.mark.asyncio
    async def test_probe_ready_server(self):
        with patch("requests.get") as mock_get:
            mock_get.return_value = Mock(status_code=200)

            result = await HealthChecker.probe_server("http://127.0.0.1:8080/", 1.0)

        assert result == ServerProbe.OK
        mock_get.assert_called_once_with("http://127.0.0.1:8080/health", timeout=1.0)

    @pytest.mark.asyncio
    async def test_probe_loading_server(self):
        with patch("requests.get", return_value=Mock(status_code=503)):
            assert await HealthChecker.probe_server("http://127.0.0.1:8080") == ServerProbe.LOADING

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"return_value": Mock(status_code=500)},
            {"side_effect": requests.ConnectionError("refused")},
            {"side_effect": requests.Timeout("slow")},
        ],
    )
    async def test_probe_unreachable(self, kwargs):
        with patch("requests.get", **kwargs):
            assert await HealthChecker.probe_server("http://127.0.0.1:8080") == ServerProbe.UNREACHABLE

    def test_check_process_running(self):
        assert HealthChecker.check_process_running(None) is False
        assert HealthChecker.check_process_running(Mock(returncode=None)) is True
        assert HealthChecker.check_process_running(Mock(pid=1, returncode=1)) is False
