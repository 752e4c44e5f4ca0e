import csv
import importlib

import pytest

import experiments as exp


def _read_csv(path):
    with path.open(newline="", encoding="utf-8") as f:
        return list(csv.DictReader(f))


def test_entropy_bits():
    assert exp.entropy_bits({"a": 1, "b": 1}) == pytest.approx(1.0)
    assert exp.entropy_bits({"a": 4}) == 0.0
    assert exp.entropy_bits({}) == 0.0


def test_is_prefix_free():
    assert exp.is_prefix_free({"a": "0", "b": "10", "c": "11"})
    assert not exp.is_prefix_free({"a": "0", "b": "01"})
    assert not exp.is_prefix_free({"a": "10", "b": "0", "c": "101"})


def test_datasets_are_seeded():
    assert exp.gen_zipf(100, seed=7) == exp.gen_zipf(100, seed=7)
    assert len(exp.gen_uniform(64)) == 64
    assert max(exp.gen_zipf(256, alphabet=16)) < 16
    assert set(exp.gen_english_like(500)) <= set(exp.ENGLISH_WEIGHTS)
    assert exp.gen_repetitive(1000, dom_frac=0.99).count(ord("A")) > 900


def test_generate_dataset_fallback():
    name, data = exp.generate_dataset("no_such_dataset", 32, seed=1)
    assert name == "no_such_dataset_fallback_uniform256"
    assert len(data) == 32

    name, data = exp.generate_dataset("repetitive90", 32, seed=1)
    assert name == "repetitive90"
    assert len(data) == 32


def test_run_one_checks_table():
    row = exp.run_one(exp.gen_english_like(2000, seed=3), "english_like", 1)
    assert row.dataset_name == "english_like"
    assert row.input_size == 2000
    assert row.prefix_free_ok == 1
    assert row.weight_ok == 1
    # a Huffman code is within one bit of the entropy
    assert -1e-9 <= row.redundancy < 1.0
    assert row.max_code_length >= 1


def test_run_one_single_symbol():
    row = exp.run_one(b"AAAA")
    assert row.unique_symbols == 1
    assert row.average_code_length == 1.0
    assert row.entropy_bits == 0.0


def test_run_one_rejects_empty():
    with pytest.raises(ValueError):
        exp.run_one(b"")


def test_summarize_groups_runs(tmp_path):
    rows = [exp.run_one(exp.gen_zipf(512, alphabet=32, seed=run_id), "zipf32", run_id) for run_id in (1, 2)]
    summary = exp.summarize(rows)
    assert len(summary) == 1
    assert summary[0]["n_runs"] == 2
    assert summary[0]["checks_ok_rate"] == 1.0
    assert summary[0]["average_code_length_mean"] >= summary[0]["entropy_bits_mean"]

    exp.write_csv(tmp_path / "summary.csv", summary)
    records = _read_csv(tmp_path / "summary.csv")
    assert records[0]["dataset_name"] == "zipf32"
    assert "build_ms_stdev" in records[0]


def test_plots_are_written(tmp_path):
    rows = [exp.run_one(exp.gen_uniform(size), "uniform256") for size in (256, 512)]
    summary = exp.summarize(rows)
    exp.plot_code_length(summary, tmp_path)
    exp.plot_build_time(summary, tmp_path)
    assert (tmp_path / "code_length.png").exists()
    assert (tmp_path / "build_time.png").exists()


def test_main_without_plots(tmp_path, capsys):
    code = exp.main([
        "--outdir", str(tmp_path), "--runs", "1", "--no_plots",
        "--datasets", "zipf128,english_like", "--sizes_kb", "1,2",
    ])
    assert code == 0

    metrics = _read_csv(tmp_path / "metrics.csv")
    assert len(metrics) == 4
    assert all(m["prefix_free_ok"] == "1" for m in metrics)
    assert len(_read_csv(tmp_path / "summary.csv")) == 4
    assert "Wrote 4 rows" in capsys.readouterr().out


def test_backend_is_chosen_by_main_not_on_import(tmp_path, monkeypatch):
    calls = []
    monkeypatch.setattr(exp.matplotlib, "use", lambda backend, *a, **kw: calls.append(backend))
    importlib.reload(exp)
    assert calls == []

    exp.main(["--outdir", str(tmp_path), "--runs", "1", "--no_plots",
              "--datasets", "uniform256", "--sizes_kb", "1"])
    assert calls == ["Agg"]
