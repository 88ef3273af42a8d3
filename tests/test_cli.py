"""
Tests for the command-line interface.
"""

import json

import pytest

from zafforge.cli.app import build_parser, main

KRATIO = ["kratio", "--unknown", "Fe=0.5,Ni=0.5", "--line", "Fe:KA1", "--beam-energy", "20"]


def _run(capsys, argv):
    assert main(argv) == 0
    return json.loads(capsys.readouterr().out)


class TestParser:
    """Subcommands and options."""

    def test_subcommands(self):
        args = build_parser().parse_args(["zaf", "--unknown", "Cu", "--line", "Cu:KA1"])
        assert args.command == "zaf"
        assert args.override is None

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestCommands:
    """End-to-end runs printing JSON."""

    def test_algorithms(self, capsys):
        data = _run(capsys, ["algorithms"])
        assert data["corrections"]["pap"].startswith("PAP")
        assert data["families"]["fluor"]["default"] == "Null"
        assert "Reed 1990" in data["families"]["fluor"]["available"]

    def test_kratio(self, capsys):
        data = _run(capsys, KRATIO)
        assert data["standard"] == "Pure Fe"
        assert 0.4 < data["k_ratio"] < 0.6

    def test_kratio_family(self, capsys):
        data = _run(capsys, ["kratio", "--unknown", "Fe=0.5,Ni=0.5", "--family", "Fe:K", "--beam-energy", "20"])
        assert 0.4 < data["k_ratio"] < 0.6

    def test_algorithm_choice(self, capsys):
        pap = _run(capsys, KRATIO)["k_ratio"]
        xpp = _run(capsys, KRATIO + ["--algorithm", "xpp"])
        assert xpp["algorithm"].startswith("XPP")
        assert xpp["k_ratio"] == pytest.approx(pap, rel=0.05)

    def test_override(self, capsys):
        data = _run(capsys, KRATIO + ["--override", "mac=heinrich86mac", "--override", "fluor=Reed 1990"])
        assert 0.4 < data["k_ratio"] < 0.7

    def test_zaf(self, capsys):
        data = _run(capsys, ["zaf", "--unknown", "Fe=0.5,Ni=0.5", "--line", "Fe:KA1", "--beam-energy", "20"])
        assert data["Z"] * data["A"] * data["F"] == pytest.approx(data["ZAF"])

    def test_curve(self, capsys):
        data = _run(capsys, ["curve", "--unknown", "Cu", "--line", "Cu:KA1", "--beam-energy", "20", "--points", "5"])
        assert len(data["rho_z_kg_m2"]) == len(data["phi"]) == len(data["absorbed"]) == 5
        assert data["phi"][0] > 1.0
        assert data["absorbed"][1] < data["phi"][1]

    def test_config_file(self, capsys, tmp_path):
        config = tmp_path / "run.json"
        config.write_text(json.dumps({"unknown": "Fe=0.5,Ni=0.5", "line": "Fe:KA1", "beam_energy": 20}))
        from_config = _run(capsys, ["kratio", "--config", str(config)])
        assert from_config["k_ratio"] == pytest.approx(_run(capsys, KRATIO)["k_ratio"])

    def test_command_line_beats_config(self, capsys, tmp_path):
        config = tmp_path / "run.json"
        config.write_text(json.dumps({"unknown": "Fe=0.5,Ni=0.5", "line": "Fe:KA1", "beam_energy": 20,
                                      "algorithm": "xpp"}))
        data = _run(capsys, ["kratio", "--config", str(config), "--algorithm", "pap"])
        assert data["algorithm"].startswith("PAP")

    def test_output_file(self, capsys, tmp_path):
        out = tmp_path / "k.json"
        assert main(KRATIO + ["--output", str(out)]) == 0
        assert "Wrote" in capsys.readouterr().out
        assert "k_ratio" in json.loads(out.read_text())


class TestErrors:
    """Failures are reported and return a non-zero status."""

    def test_missing_beam_energy(self, capsys):
        assert main(["kratio", "--unknown", "Cu", "--line", "Cu:KA1"]) == 1
        assert "--beam-energy" in capsys.readouterr().err

    def test_edge_above_beam(self, capsys):
        assert main(["kratio", "--unknown", "Cu", "--line", "Cu:KA1", "--beam-energy", "5"]) == 1
        assert capsys.readouterr().err.startswith("error:")

    def test_bad_override(self, capsys):
        assert main(KRATIO + ["--override", "mac"]) == 1

    def test_particle_needs_density(self, capsys):
        argv = KRATIO + ["--algorithm", "armstrong-particle", "--shape", "sphere:diameter_m=2e-6"]
        assert main(argv) == 1
