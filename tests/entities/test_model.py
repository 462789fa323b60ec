import pytest
from pydantic import ValidationError

from src.entities.model import ModelDescriptor, SizeBand, classify_size_band


class TestSizeBands:
    @pytest.mark.parametrize(
        "size_mb, band",
        [
            (None, SizeBand.SMALL),
            (0, SizeBand.SMALL),
            (4200, SizeBand.SMALL),
            (4999.9, SizeBand.SMALL),
            (5000, SizeBand.MEDIUM),
            (8500, SizeBand.MEDIUM),
            (10000, SizeBand.LARGE),
            (19999, SizeBand.LARGE),
            (20000, SizeBand.HUGE),
            (42500, SizeBand.HUGE),
        ],
    )
    def test_classify_size_band(self, size_mb, band):
        assert classify_size_band(size_mb) == band

    @pytest.mark.parametrize(
        "size_mb, gpu_layers, startup_timeout",
        [
            (4200, 99, 120.0),
            (7800, 75, 180.0),
            (15000, 60, 240.0),
            (42500, 25, 300.0),
        ],
    )
    def test_descriptor_derives_layers_and_timeout_from_band(self, size_mb, gpu_layers, startup_timeout):
        descriptor = ModelDescriptor(binary_path="/bin/llama-server", model_path="/m.gguf", size_mb=size_mb)

        assert descriptor.gpu_layers == gpu_layers
        assert descriptor.startup_timeout == startup_timeout

    def test_derivation_depends_only_on_size(self):
        first = ModelDescriptor(binary_path="/a/llama-server", model_path="/a.gguf", size_mb=42500, port=8081)
        second = ModelDescriptor(binary_path="/b/llama-server", model_path="/b.gguf", size_mb=30000, ctx_size=4096)

        assert first.size_band == second.size_band == SizeBand.HUGE
        assert (first.gpu_layers, first.startup_timeout) == (second.gpu_layers, second.startup_timeout)

    def test_gpu_layer_override(self):
        descriptor = ModelDescriptor(binary_path="/bin/llama-server", model_path="/m.gguf", size_mb=42500, n_gpu_layers=0)

        assert descriptor.gpu_layers == 0
        assert descriptor.startup_timeout == 300.0

    def test_server_url(self, descriptor):
        assert descriptor.server_url == "http://127.0.0.1:8080"

    def test_invalid_port(self):
        with pytest.raises(ValidationError):
            ModelDescriptor(binary_path="/bin/llama-server", model_path="/m.gguf", port=70000)
