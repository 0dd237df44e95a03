import io

import numpy as np
import pytest
from PIL import Image

from analysis import DecodeError, analyze, analyze_image, analyze_paths
from models import ClassificationLabel, result_to_dict, round_half_up
from conftest import encode, noise, solid


def test_image_against_itself(noise_png):
    result = analyze(noise_png, noise_png)
    assert result.similarity_score == 100
    assert result.phash_distance == 0
    assert result.image1.classification == result.image2.classification
    assert "Both images appear to be of the same category" in result.summary
    assert "exceptionally high similarity score of 100%" in result.summary


def test_red_vs_blue(red_png, blue_png):
    result = analyze(red_png, blue_png)
    for img in (result.image1, result.image2):
        assert img.classification is ClassificationLabel.GENERAL_SUBJECT_ABSTRACT
        assert img.metrics.edge_density == 0.0
        assert img.metrics.contrast == 0.0
        assert img.metrics.is_low_contrast
        assert img.color_variety == 1
        assert img.skin_tone_percent == 0.0
    assert result.similarity_score == 0
    assert result.summary.startswith("[ANALYZABILITY WARNING]")
    assert "Despite being in the same category, the lower similarity score of 0%" in result.summary
    assert "different subjects" not in result.summary


def test_two_by_two_image():
    arr = np.array([[(0, 0, 0), (255, 255, 255)],
                    [(255, 255, 255), (0, 0, 0)]], dtype=np.uint8)
    img = analyze_image(encode(arr))
    assert (img.width, img.height) == (2, 2)
    assert img.metrics.edge_density == 0.0
    assert img.metrics.brightness == 127.5
    assert img.metrics.contrast == 127.5


def test_large_image_is_normalized():
    img = analyze_image(encode(solid((9, 9, 9), width=1000, height=500)))
    assert (img.width, img.height) == (400, 200)
    assert int(img.histogram.sum()) == 400 * 200
    with Image.open(io.BytesIO(img.edges_png)) as im:
        assert im.size == (400, 200)


def test_metrics_are_rounded_to_two_decimals(noise_png):
    m = analyze_image(noise_png).metrics
    assert m.brightness == round(m.brightness, 2)
    assert m.contrast == round(m.contrast, 2)
    assert 0 <= m.brightness <= 255
    assert not m.is_low_contrast


def test_analysis_is_deterministic(noise_png, red_png):
    first = analyze(noise_png, red_png)
    second = analyze(noise_png, red_png)
    assert result_to_dict(first) == result_to_dict(second)
    assert first.image1.grayscale_png == second.image1.grayscale_png
    assert first.image1.edges_png == second.image1.edges_png


def test_parallel_and_sequential_agree(noise_png, blue_png):
    par = analyze(noise_png, blue_png, parallel=True)
    seq = analyze(noise_png, blue_png, parallel=False)
    assert result_to_dict(par) == result_to_dict(seq)


def test_similarity_is_symmetric():
    a = encode(noise(seed=1))
    b = encode(noise(seed=2))
    assert analyze(a, b).similarity_score == analyze(b, a).similarity_score


@pytest.mark.parametrize("parallel", [True, False])
def test_decode_error_aborts_comparison(noise_png, parallel):
    with pytest.raises(DecodeError):
        analyze(b"garbage", noise_png, parallel=parallel)
    with pytest.raises(DecodeError):
        analyze(noise_png, b"", parallel=parallel)


def test_result_dict_excludes_internal_fields(noise_png, red_png):
    data = result_to_dict(analyze(noise_png, red_png))
    assert set(data) == {"image1", "image2", "similarity_score", "phash_distance", "summary"}
    assert "histogram" not in data["image1"]
    assert data["image2"]["classification"] == "General Subject / Abstract"


def test_analyze_paths(tmp_path, noise_png, red_png):
    p1 = tmp_path / "a.png"
    p2 = tmp_path / "b.png"
    p1.write_bytes(noise_png)
    p2.write_bytes(red_png)
    result = analyze_paths(p1, str(p2))
    assert result.image2.classification is ClassificationLabel.GENERAL_SUBJECT_ABSTRACT


def test_analyze_paths_missing_file(tmp_path, noise_png):
    p1 = tmp_path / "a.png"
    p1.write_bytes(noise_png)
    with pytest.raises(FileNotFoundError):
        analyze_paths(p1, tmp_path / "missing.png")


def near_threshold_contrast_png():
    # 1000 pixels at 110, 1000 at 90, one at 100: mean 100, std sqrt(99.95) ~ 9.9975
    values = np.array([110] * 1000 + [90] * 1000 + [100], dtype=np.uint8).reshape(29, 69)
    return encode(np.dstack([values, values, values]))


def test_low_contrast_uses_unrounded_std():
    m = analyze_image(near_threshold_contrast_png()).metrics
    assert m.brightness == 100.0
    assert m.contrast == 10.0
    assert m.is_low_contrast is True


def test_classifier_receives_unrounded_std(monkeypatch):
    import analysis
    seen = []
    real_classify = analysis.classify

    def recording_classify(edge_density, contrast, skin, variety):
        seen.append(contrast)
        return real_classify(edge_density, contrast, skin, variety)

    monkeypatch.setattr(analysis, "classify", recording_classify)
    img = analyze_image(near_threshold_contrast_png())
    assert len(seen) == 1
    assert 9.995 <= seen[0] < 10.0
    assert img.metrics.contrast == 10.0


def test_brightness_rounds_ties_up():
    arr = solid((127, 127, 127), width=8, height=1)
    arr[0, 7] = (128, 128, 128)
    assert analyze_image(encode(arr)).metrics.brightness == 127.13


def test_round_half_up():
    assert round_half_up(0.125, 2) == 0.13
    assert round_half_up(127.125, 2) == 127.13
    assert round_half_up(12.5) == 13
    assert round_half_up(12.4999) == 12
    assert round_half_up(0.0, 2) == 0.0
