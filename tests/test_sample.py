import json

import pytest

from shared.errors import SampleDecodeError
from shared.sample import ChannelSample, ReadingSample, SampleSchema, decode_sample


def test_channel_sample_fields_match_json():
    sample = decode_sample('{"channel":2,"timestamp":1000,"value":3.5}', SampleSchema.CHANNEL)

    assert sample == ChannelSample(channel=2, timestamp=1000, value=3.5)
    assert sample.format_line() == "2, 1000, 3.500000"


def test_reading_sample_fields_match_json():
    sample = decode_sample(b'{"timestamp":42,"value":7}', SampleSchema.READING)

    assert sample == ReadingSample(timestamp=42, value=7)
    assert repr(sample) == "ReadingSample(timestamp=42, value=7)"


def test_encode_then_decode_preserves_fields():
    sample = ChannelSample(channel=3, timestamp=0xFFFFFFFF, value=-0.25)
    assert ChannelSample.from_json(sample.to_json()) == sample

    reading = ReadingSample(timestamp=123456, value=4095)
    assert ReadingSample.from_json(reading.to_json()) == reading


def test_value_is_rounded_to_single_precision():
    sample = decode_sample('{"channel":0,"timestamp":1,"value":0.1}', SampleSchema.CHANNEL)

    assert sample.value != 0.1
    assert sample.value == pytest.approx(0.1, rel=1e-7)
    assert sample.format_line() == "0, 1, 0.100000"


def test_integral_value_accepted_for_channel_schema():
    sample = decode_sample('{"channel":1,"timestamp":5,"value":12}', SampleSchema.CHANNEL)
    assert sample.value == 12.0
    assert isinstance(sample.value, float)


def test_extra_keys_are_ignored():
    sample = decode_sample('{"timestamp":1,"value":2,"overflow":false}', SampleSchema.READING)
    assert sample == ReadingSample(timestamp=1, value=2)


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        "[1, 2, 3]",
        '"a string"',
        b"\xff\xfe",
        '{"timestamp":1,"value":2}',                       # missing channel
        '{"channel":"1","timestamp":1,"value":2.0}',       # channel as string
        '{"channel":-1,"timestamp":1,"value":2.0}',        # negative channel
        '{"channel":true,"timestamp":1,"value":2.0}',      # bool is not an int
        '{"channel":1,"timestamp":1.5,"value":2.0}',       # fractional timestamp
        '{"channel":1,"timestamp":-1,"value":2.0}',        # below uint32
        '{"channel":1,"timestamp":4294967296,"value":2.0}',  # above uint32
        '{"channel":1,"timestamp":1,"value":"2.0"}',       # value as string
        '{"channel":1,"timestamp":1,"value":1e39}',        # beyond float32
        '{"channel":1,"timestamp":1,"value":null}',
        '{"channel":1,"timestamp":1,"value":NaN}',
        '{"channel":1,"timestamp":1,"value":Infinity}',
        '{"channel":1,"timestamp":1,"value":-Infinity}',
    ],
)
def test_malformed_channel_frames_raise(raw):
    with pytest.raises(SampleDecodeError):
        decode_sample(raw, SampleSchema.CHANNEL)


@pytest.mark.parametrize(
    "payload",
    [
        {"timestamp": 1},
        {"value": 1},
        {"timestamp": 1, "value": 2.5},
        {"timestamp": 1, "value": -3},
        {"timestamp": 1, "value": 2 ** 32},
        {"timestamp": False, "value": 1},
    ],
)
def test_malformed_reading_frames_raise(payload):
    with pytest.raises(SampleDecodeError):
        decode_sample(json.dumps(payload), SampleSchema.READING)


def test_schema_defaults():
    assert SampleSchema.from_string("CHANNEL") is SampleSchema.CHANNEL
    assert SampleSchema.CHANNEL.default_output == "print"
    assert SampleSchema.CHANNEL.default_handle_signals is False
    assert SampleSchema.READING.default_output == "log"
    assert SampleSchema.READING.default_handle_signals is True

    with pytest.raises(ValueError):
        SampleSchema.from_string("bogus")
