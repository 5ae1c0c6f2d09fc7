"""推論ハンドルのテスト (TensorRT・GPU不要)."""

import json

import numpy as np
import pytest

from trtpredict import predictor
from trtpredict.config import PredictorConfig
from trtpredict.errors import ErrorKind
from trtpredict.predictor import PredictorHandle


@pytest.fixture
def handle(make_engine, host_memory):
    """StubEngine を所有するハンドル."""
    engine = make_engine(host_memory, layer_times=[("conv1", 1.0), ("fc", 0.5)])
    return PredictorHandle(engine, memory=host_memory)


def _input(batch_size: int) -> np.ndarray:
    return np.zeros(batch_size * 3 * 4 * 4, dtype=np.float32)


class TestNullHandle:
    """None ハンドルに対する関数APIのテスト."""

    def test_create_without_engine(self) -> None:
        """エンジンが None ならハンドルも None になることを確認する."""
        assert predictor.create(None) is None

    def test_destroy_none_is_noop(self) -> None:
        """None の破棄は何もしないことを確認する."""
        predictor.destroy(None)

    def test_execute_none_returns_invalid_handle(self) -> None:
        """None に対する execute が INVALID_HANDLE の失敗になることを確認する."""
        result = predictor.execute(None, _input(1), "data", "prob", 1)

        assert not result.ok
        assert result.payload is None
        assert result.error_kind is ErrorKind.INVALID_HANDLE

    def test_profiling_calls_on_none(self) -> None:
        """None に対するプロファイル操作が例外を送出しないことを確認する."""
        predictor.start_profiling(None, "run1", "meta")
        predictor.end_profiling(None)
        predictor.disable_profiling(None)

        assert predictor.read_profile(None) == "[]"

    def test_create_from_missing_engine_file(self, tmp_path) -> None:
        """存在しないエンジンファイルからはハンドルを作らないことを確認する."""
        assert predictor.create_from_engine_file(tmp_path / "missing.engine") is None


class TestExecute:
    """PredictorHandle.execute のテスト."""

    def test_classification_scenario(self, make_engine, host_memory) -> None:
        """(3,224,224) 入力・1000クラス・batch 2 で 2000 件返ることを確認する."""
        engine = make_engine(
            host_memory, tensors=[("data", (-1, 3, 224, 224)), ("prob", (-1, 1000))]
        )
        handle = predictor.create(engine, memory=host_memory)

        result = predictor.execute(
            handle, np.zeros(2 * 3 * 224 * 224, dtype=np.float32), "data", "prob", 2
        )

        assert result.ok
        records = json.loads(result.payload)
        assert len(records) == 2000
        assert records[1000] == {"index": 0, "probability": 1000.0}
        assert records[1999]["index"] == 999

    def test_wrong_binding_count_fails_without_allocation(
        self, make_engine, host_memory
    ) -> None:
        """バインディングが2つでなければ確保前に CONFIGURATION で失敗することを確認する."""
        engine = make_engine(
            host_memory,
            tensors=[("data", (-1, 3, 4, 4)), ("prob", (-1, 5)), ("aux", (-1, 2))],
        )
        handle = PredictorHandle(engine, memory=host_memory)

        result = handle.execute(_input(1), "data", "prob", 1)

        assert not result.ok
        assert result.error_kind is ErrorKind.CONFIGURATION
        assert host_memory.allocations == 0
        assert engine.contexts == []

    def test_unknown_tensor_name(self, handle, host_memory) -> None:
        """未知のテンソル名は CONFIGURATION で失敗することを確認する."""
        result = handle.execute(_input(1), "data", "logits", 1)

        assert result.error_kind is ErrorKind.CONFIGURATION
        assert host_memory.allocations == 0

    @pytest.mark.parametrize("batch_size", [0, 33])
    def test_batch_size_out_of_range(self, handle, host_memory, batch_size) -> None:
        """batch_size が 1..max_batch_size の外なら失敗することを確認する."""
        result = handle.execute(_input(1), "data", "prob", batch_size)

        assert result.error_kind is ErrorKind.CONFIGURATION
        assert host_memory.allocations == 0

    def test_max_batch_size_from_config(self, make_engine, host_memory) -> None:
        """max_batch_size が設定から読まれることを確認する."""
        handle = PredictorHandle(
            make_engine(host_memory),
            memory=host_memory,
            config=PredictorConfig(max_batch_size=2),
        )

        assert handle.execute(_input(2), "data", "prob", 2).ok
        assert not handle.execute(_input(3), "data", "prob", 3).ok

    def test_execution_failure_is_reported(self, make_engine, host_memory) -> None:
        """実行失敗が EXECUTION の結果になり, 資源が解放されることを確認する."""
        handle = PredictorHandle(
            make_engine(host_memory, fail_execute=True), memory=host_memory
        )

        result = handle.execute(_input(1), "data", "prob", 1)

        assert result.error_kind is ErrorKind.EXECUTION
        assert result.message
        assert host_memory.live_regions == 0

    def test_resource_failure_is_reported(self, make_engine, make_memory) -> None:
        """確保失敗が RESOURCE の結果になることを確認する."""
        memory = make_memory(fail_on_allocation=1)
        handle = PredictorHandle(make_engine(memory), memory=memory)

        result = handle.execute(_input(1), "data", "prob", 1)

        assert result.error_kind is ErrorKind.RESOURCE

    @pytest.mark.parametrize(
        "input_data",
        [
            ["a"] * 48,
            [[1.0] * 48, [1.0]],
        ],
    )
    def test_unconvertible_input_is_reported(self, handle, host_memory, input_data) -> None:
        """float32 に変換できない入力は例外を送出せず CONFIGURATION で失敗することを確認する."""
        result = handle.execute(input_data, "data", "prob", 1)

        assert not result.ok
        assert result.error_kind is ErrorKind.CONFIGURATION
        assert host_memory.allocations == 0

    def test_unconvertible_input_via_module_api(self, handle) -> None:
        """モジュール関数の execute でも変換失敗が結果として返ることを確認する."""
        result = predictor.execute(handle, [[1.0] * 48, [1.0]], "data", "prob", 1)

        assert result.error_kind is ErrorKind.CONFIGURATION
        assert "float32" in result.message

    def test_repeated_calls_are_independent(self, handle, host_memory) -> None:
        """繰り返し実行しても資源が残らないことを確認する."""
        for _ in range(3):
            assert handle.execute(_input(2), "data", "prob", 2).ok

        assert host_memory.live_regions == 0
        assert host_memory.allocations == 6


class TestProfiling:
    """プロファイル制御のテスト."""

    def test_read_before_start(self, handle) -> None:
        """開始前は "[]" を返すことを確認する."""
        assert handle.profile is None
        assert handle.read_profile() == "[]"

    def test_records_layers_during_execute(self, handle) -> None:
        """実行中のレイヤー時間が連続した区間として記録されることを確認する."""
        handle.start_profiling("run1", "meta")
        handle.execute(_input(1), "data", "prob", 1)
        handle.end_profiling()

        entries = json.loads(handle.read_profile())
        assert [entry["layer_name"] for entry in entries] == ["conv1", "fc"]
        assert entries[0]["end_ns"] - entries[0]["start_ns"] == 1_000_000
        assert entries[1]["start_ns"] == entries[0]["end_ns"]
        assert entries[1]["end_ns"] - entries[1]["start_ns"] == 500_000

    def test_timeline_continues_across_executes(self, handle) -> None:
        """同じセッション内の複数回の実行でタイムラインが続くことを確認する."""
        handle.start_profiling("run1")
        handle.execute(_input(1), "data", "prob", 1)
        handle.execute(_input(1), "data", "prob", 1)

        entries = handle.profile.entries
        assert len(entries) == 4
        assert entries[2].start_ns == entries[1].end_ns

    def test_no_entries_after_end(self, handle) -> None:
        """end 後の実行は記録されないことを確認する."""
        handle.start_profiling("run1")
        handle.end_profiling()

        handle.execute(_input(1), "data", "prob", 1)

        assert handle.read_profile() == "[]"

    def test_restart_reuses_profile(self, handle) -> None:
        """再開始で同じプロファイルを再利用し, 名前を保持することを確認する."""
        handle.start_profiling("run1", "meta")
        profile = handle.profile
        handle.execute(_input(1), "data", "prob", 1)

        handle.start_profiling("run2", "other")

        assert handle.profile is profile
        assert profile.name == "run1"
        assert profile.metadata == "meta"
        assert handle.read_profile() == "[]"

    def test_disable_keeps_profile(self, handle) -> None:
        """disable でエントリを破棄してもプロファイル自体は残ることを確認する."""
        handle.start_profiling("run1")
        handle.execute(_input(1), "data", "prob", 1)
        profile = handle.profile

        handle.disable_profiling()

        assert handle.profile is profile
        assert handle.read_profile() == "[]"
        assert not profile.is_active

    def test_default_name(self, handle) -> None:
        """名前を省略した場合は空文字になることを確認する."""
        handle.start_profiling()

        assert handle.profile.name == ""


class TestLifecycle:
    """ハンドルの生成・破棄のテスト."""

    def test_destroy_releases_engine(self, make_engine, host_memory) -> None:
        """destroy でエンジンが解放されることを確認する."""
        engine = make_engine(host_memory)
        handle = predictor.create(engine, memory=host_memory)
        handle.start_profiling("run1")

        predictor.destroy(handle)

        assert engine.released
        assert handle.engine is None
        assert handle.profile is None

    def test_context_manager(self, make_engine, host_memory) -> None:
        """with 文を抜けるとハンドルが破棄されることを確認する."""
        engine = make_engine(host_memory)

        with PredictorHandle(engine, memory=host_memory) as handle:
            assert handle.execute(_input(1), "data", "prob", 1).ok

        assert engine.released

    def test_create_from_onnx_without_tensorrt(self, tmp_path, monkeypatch) -> None:
        """TensorRT がなければ create_from_onnx は None を返すことを確認する."""
        from trtpredict.engine import builder

        def _missing():
            raise ImportError("TensorRTがインストールされていません")

        monkeypatch.setattr(builder, "import_tensorrt", _missing)

        assert predictor.create_from_onnx(tmp_path / "model.onnx", "prob") is None
