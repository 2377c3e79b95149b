"""Tests for the command-line adapter."""

import base64

from posegen.api import cli
from posegen.core.controller import PoseStudioController
from posegen.image.service import PoseGenerationService


def make_controller(client):
    return PoseStudioController(PoseGenerationService(client))


def test_cli_writes_generated_images(tmp_path, make_image, fake_client_factory, responses, capsys):
    character = tmp_path / "hero.png"
    character.write_bytes(make_image(1920, 1080))
    pose = tmp_path / "pose.jpg"
    pose.write_bytes(make_image(300, 400, fmt="JPEG"))
    output_dir = tmp_path / "out"
    payload = base64.b64encode(b"generated-bytes").decode("ascii")
    client = fake_client_factory([responses.image(data=payload, caption="A bold pose")])

    status = cli.main(
        [
            "--character", str(character),
            "--pose", str(pose),
            "--prompt", "kneeling",
            "--count", "2",
            "--quality", "Ultra",
            "--output-dir", str(output_dir),
        ],
        controller=make_controller(client),
    )

    assert status == 0
    written = sorted(path.name for path in output_dir.iterdir())
    assert written == ["generated-pose-1.png", "generated-pose-2.png"]
    assert (output_dir / "generated-pose-1.png").read_bytes() == b"generated-bytes"

    text = client.payloads[0]["contents"][0]["parts"][-1]["text"]
    assert text.startswith("PRIORITY ONE")
    assert "3:4" in text
    assert "photorealistic" in text
    assert '"A bold pose"' in capsys.readouterr().out


def test_cli_reports_unreadable_character(tmp_path, fake_client_factory, responses, capsys):
    client = fake_client_factory([responses.image()])

    status = cli.main(
        ["--character", str(tmp_path / "missing.png"), "--output-dir", str(tmp_path)],
        controller=make_controller(client),
    )

    assert status == 1
    assert "Could not read image" in capsys.readouterr().err
    assert client.payloads == []


def test_cli_rejects_out_of_range_count(tmp_path, make_image, fake_client_factory, responses, capsys):
    character = tmp_path / "hero.png"
    character.write_bytes(make_image())
    client = fake_client_factory([responses.image()])

    status = cli.main(
        ["--character", str(character), "--count", "7"],
        controller=make_controller(client),
    )

    assert status == 1
    assert "between 1 and 4" in capsys.readouterr().err
    assert client.payloads == []


def test_cli_reports_empty_generation(tmp_path, make_image, fake_client_factory, responses, capsys):
    character = tmp_path / "hero.png"
    character.write_bytes(make_image())
    client = fake_client_factory([responses.text_only()])

    status = cli.main(["--character", str(character)], controller=make_controller(client))

    assert status == 1
    assert "API did not return any images" in capsys.readouterr().err
