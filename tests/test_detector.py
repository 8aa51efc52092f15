import asyncio

import numpy as np
import pytest

from signlive.config import DetectorConfig
from signlive.errors import InitializationError
from conftest import FakeClassifier, FakeExtractor


async def feed(detector, frame, clock, n, step=0.25):
    results = []
    for _ in range(n):
        results.append(await detector.detect_gesture(frame))
        clock.advance(step)
    return results


async def test_not_initialized_returns_none(make_detector, extractor, frame):
    detector = make_detector()

    assert await detector.detect_gesture(frame) is None
    assert extractor.calls == 0


async def test_waits_for_min_fill(make_detector, classifier, frame, clock):
    detector = make_detector()
    await detector.initialize()

    results = await feed(detector, frame, clock, 10)

    assert results[:9] == [None] * 9
    assert results[9].gesture == "hello"
    assert results[9].confidence == pytest.approx(0.9)
    assert len(classifier.inputs) == 1


async def test_classifier_input_is_padded_to_window(make_detector, classifier, frame, clock):
    detector = make_detector()
    await detector.initialize()

    await feed(detector, frame, clock, 12)

    window = classifier.inputs[-1]
    assert window.shape == (30, 42)
    assert not window[:18].any()
    assert np.allclose(window[18:], 0.5)


async def test_throttle_skips_without_side_effects(make_detector, extractor, frame, clock):
    detector = make_detector()
    await detector.initialize()

    await detector.detect_gesture(frame)
    clock.advance(0.1)
    assert await detector.detect_gesture(frame) is None

    assert extractor.calls == 1
    assert len(detector.window) == 1

    clock.advance(0.15)
    await detector.detect_gesture(frame)
    assert extractor.calls == 2


async def test_overlapping_calls_are_dropped(make_detector, extractor, frame):
    detector = make_detector(config=DetectorConfig(min_fill=1, throttle_s=0.0))
    await detector.initialize()

    first, second = await asyncio.gather(
        detector.detect_gesture(frame),
        detector.detect_gesture(frame),
    )

    assert first is not None
    assert second is None
    assert extractor.calls == 1
    assert not detector.is_busy


async def test_low_confidence_is_rejected(make_detector, frame, clock):
    detector = make_detector(
        classifier=FakeClassifier(probs=(0.5, 0.5)),
        config=DetectorConfig(min_fill=1, throttle_s=0.0),
    )
    await detector.initialize()

    assert await detector.detect_gesture(frame) is None


async def test_top_label_is_returned(make_detector, frame):
    detector = make_detector(
        classifier=FakeClassifier(probs=(0.2, 0.8)),
        config=DetectorConfig(min_fill=1, throttle_s=0.0),
    )
    await detector.initialize()

    result = await detector.detect_gesture(frame)
    assert result.gesture == "thankyou"
    assert result.confidence == pytest.approx(0.8)


async def test_extractor_failure_is_not_fatal(make_detector, extractor, frame, clock):
    detector = make_detector(config=DetectorConfig(min_fill=1, throttle_s=0.0))
    await detector.initialize()

    extractor.fail_next = True
    assert await detector.detect_gesture(frame) is None
    assert not detector.is_busy

    assert await detector.detect_gesture(frame) is not None


async def test_no_hand_never_classifies(make_detector, classifier, frame, clock):
    detector = make_detector(extractor=FakeExtractor(hand_visible=False))
    await detector.initialize()

    results = await feed(detector, frame, clock, 40)

    assert results == [None] * 40
    assert classifier.inputs == []
    assert len(detector.window) == 0


async def test_initialize_failure(make_detector, frame):
    extractor = FakeExtractor(fail_load=True)
    classifier = FakeClassifier()
    detector = make_detector(extractor=extractor, classifier=classifier)

    with pytest.raises(InitializationError):
        await detector.initialize()

    assert not detector.is_ready
    assert classifier.closed == 1
    assert await detector.detect_gesture(frame) is None
    await detector.dispose()


async def test_initialize_twice_is_ignored(make_detector):
    detector = make_detector()
    await detector.initialize()
    await detector.initialize()

    assert detector.is_ready
    await detector.dispose()


async def test_dispose_is_idempotent(make_detector, extractor, classifier, frame, clock):
    detector = make_detector()
    await detector.initialize()
    await feed(detector, frame, clock, 3)

    await detector.dispose()
    await detector.dispose()

    assert extractor.closed == 1
    assert classifier.closed == 1
    assert len(detector.window) == 0
    assert await detector.detect_gesture(frame) is None


async def test_dispose_without_initialize(make_detector, extractor):
    detector = make_detector()

    await detector.dispose()

    assert extractor.closed == 0


async def test_unlabeled_output_index_is_dropped(make_detector, frame):
    detector = make_detector(
        classifier=FakeClassifier(probs=(0.05, 0.05, 0.9)),
        config=DetectorConfig(min_fill=1, throttle_s=0.0),
    )
    await detector.initialize()

    assert await detector.detect_gesture(frame) is None
    assert not detector.is_busy


async def test_accepts_frame_follows_throttle(make_detector, frame, clock):
    detector = make_detector()
    assert not detector.accepts_frame()

    await detector.initialize()
    assert detector.accepts_frame()

    await detector.detect_gesture(frame)
    clock.advance(0.1)
    assert not detector.accepts_frame()

    clock.advance(0.15)
    assert detector.accepts_frame()
