from PIL import Image

from scripts.optimize_image import main


def test_cli_writes_output(tmp_path, png_bytes):
    source = tmp_path / "photo.png"
    source.write_bytes(png_bytes)
    output = tmp_path / "out.jpg"

    assert main([str(source), "-f", "jpeg", "-q", "70", "-o", str(output)]) == 0
    assert Image.open(output).format == "JPEG"


def test_cli_default_output_name(tmp_path, png_bytes):
    source = tmp_path / "photo.png"
    source.write_bytes(png_bytes)

    assert main([str(source), "--width", "100", "--policy", "analytic"]) == 0
    assert Image.open(tmp_path / "photo.opt.webp").size == (100, 75)


def test_cli_missing_file(tmp_path):
    assert main([str(tmp_path / "missing.png")]) == 1


def test_cli_unsupported_format(tmp_path, png_bytes):
    source = tmp_path / "photo.png"
    source.write_bytes(png_bytes)
    assert main([str(source), "-f", "gif"]) == 1


def test_cli_strict_budget(tmp_path, png_bytes):
    """Тест: --strict -> код 2, если бюджет не достигнут."""
    source = tmp_path / "photo.png"
    source.write_bytes(png_bytes)

    assert main([str(source), "-b", "100", "--strict"]) == 2
    assert main([str(source), "-b", "100"]) == 0
