"""Tests for generated Python protocol packages."""

import importlib

from hypothesis import given, settings
from hypothesis import strategies as st

from wirecraft.generator import python
from wirecraft.proto import ParseFailure, SerializeFailure


def describe_gopher():
    def describe_parse():
        def parses_selector_line(expect, generated):
            gopher = generated("gopher.json")
            result = gopher.parse_gopher_request(b"/about\r\n")
            expect(result.ok) == True
            expect(result.message) == gopher.GopherRequest(selector="/about")
            expect(result.bytes_consumed) == 8

        def reports_missing_terminator(expect, generated):
            gopher = generated("gopher.json")
            result = gopher.parse_gopher_request(b"/about")
            expect(isinstance(result, ParseFailure)) == True
            expect(result.state) == "TERMINAL"
            expect(result.offset) == 6
            expect(result.expected) == "\r\n"
            expect(result.actual) == ""
            expect(result.bytes_consumed) == 0

        def parses_menu_item(expect, generated):
            gopher = generated("gopher.json")
            result = gopher.parse_gopher_item(b"1Docs\t/docs\tgopher.example\t70\r\n")
            expect(result.ok) == True
            expect(result.message) == gopher.GopherItem(
                item_type="1", display="Docs", selector="/docs", host="gopher.example", port=70
            )

        def fails_atomically_on_bad_number(expect, generated):
            gopher = generated("gopher.json")
            result = gopher.parse_gopher_item(b"0a\ta\ta\tnotaport\r\n")
            expect(result.ok) == False
            expect(result.state) == "EXTRACT_FIELD:port"
            expect(result.offset) == 7
            expect(result.expected) == "an integer"
            expect(result.bytes_consumed) == 0

        def rejects_number_out_of_range(expect, generated):
            gopher = generated("gopher.json")
            result = gopher.parse_gopher_item(b"0a\ta\ta\t70000\r\n")
            expect(result.ok) == False
            expect(result.expected) == "a number <= 65535"

        def rejects_unknown_enum_value(expect, generated):
            gopher = generated("gopher.json")
            result = gopher.parse_gopher_item(b"xa\ta\ta\t70\r\n")
            expect(result.state) == "EXTRACT_FIELD:itemType"
            expect(result.expected) == "one of: 0, 1, i"

        def parses_from_offset(expect, generated):
            gopher = generated("gopher.json")
            data = b"/one\r\n/two\r\n"
            first = gopher.parse_gopher_request(data)
            second = gopher.parse_gopher_request(data, first.bytes_consumed)
            expect(second.message.selector) == "/two"
            expect(second.bytes_consumed) == 6

        def fails_when_offset_is_past_the_end(expect, generated):
            gopher = generated("gopher.json")
            result = gopher.parse_gopher_request(b"/a\r\n", 10)
            expect(result.ok) == False
            expect(result.offset) == 10

        def truncates_long_previews(expect, generated):
            gopher = generated("gopher.json")
            result = gopher.parse_gopher_request(b"x" * 80)
            expect(result.actual) == ""
            result = gopher.parse_gopher_item(b"?" + b"y" * 80)
            expect(result.actual.endswith("...")) == True

    def describe_serialize():
        def writes_selector_line(expect, generated):
            gopher = generated("gopher.json")
            result = gopher.serialize_gopher_request(gopher.GopherRequest(selector="/about"))
            expect(result.ok) == True
            expect(result.data) == b"/about\r\n"

        def reports_every_violation(expect, generated):
            gopher = generated("gopher.json")
            item = gopher.GopherItem(item_type="x", display="a\tb", selector="s", host="h", port=0)
            result = gopher.serialize_gopher_item(item)
            expect(isinstance(result, SerializeFailure)) == True
            expect([(e.field, e.constraint) for e in result.errors]) == [
                ("itemType", "enum"),
                ("display", "contains_stop"),
                ("port", "minimum"),
            ]

        def rejects_selector_over_max_length(expect, generated):
            gopher = generated("gopher.json")
            result = gopher.serialize_gopher_request(gopher.GopherRequest(selector="s" * 256))
            expect([e.constraint for e in result.errors]) == ["max_length"]

        def rejects_missing_required_field(expect, generated):
            gopher = generated("gopher.json")
            result = gopher.serialize_gopher_request(gopher.GopherRequest(selector=None))
            expect([e.constraint for e in result.errors]) == ["required"]

        def validates_without_serializing(expect, generated):
            gopher = generated("gopher.json")
            expect(gopher.validate_gopher_request(gopher.GopherRequest(selector="/"))) == []

    def runs_the_generated_tests(expect, generated):
        gopher = generated("gopher.json")
        tests = importlib.import_module(gopher.__name__ + ".test_gopher")
        names = sorted(name for name in dir(tests) if name.startswith("test_"))
        expect(names) == [
            "test_gopher_item_example",
            "test_gopher_item_rejects_truncated_input",
            "test_gopher_item_round_trip",
            "test_gopher_request_example",
            "test_gopher_request_rejects_truncated_input",
            "test_gopher_request_round_trip",
        ]
        for name in names:
            getattr(tests, name)()

    def exposes_client_settings(expect, generated):
        gopher = generated("gopher.json")
        client = gopher.GopherClient("gopher.example")
        expect(client.port) == 70
        expect(client.timeout) == 5.0
        expect(gopher.GopherClient.read_until_close) == True
        expect(gopher.GopherClient.retry_attempts) == 0
        expect(issubclass(gopher.GopherClient.timeout_error, gopher.GopherError)) == True


def describe_finger():
    def treats_empty_optional_field_as_absent(expect, generated):
        finger = generated("finger.json")
        result = finger.parse_finger_query(b"\r\n")
        expect(result.ok) == True
        expect(result.message.username) == None
        expect(result.bytes_consumed) == 2

    def omits_absent_optional_field(expect, generated):
        finger = generated("finger.json")
        result = finger.serialize_finger_query(finger.FingerQuery())
        expect(result.data) == b"\r\n"

    def writes_defaults_and_delimiters(expect, generated):
        finger = generated("finger.json")
        message = finger.FingerForward(user="alice", host="example.org")
        expect(message.port) == 79
        expect(finger.serialize_finger_forward(message).data) == b"alice|example.org|79\n"

    def falls_back_to_default_when_optional_field_is_empty(expect, generated):
        finger = generated("finger.json")
        result = finger.parse_finger_forward(b"alice|example.org|\n")
        expect(result.ok) == True
        expect(result.message.port) == 79

    def parses_delimited_fields(expect, generated):
        finger = generated("finger.json")
        result = finger.parse_finger_forward(b"bob|host|8079\n")
        expect(result.message) == finger.FingerForward(user="bob", host="host", port=8079)

    def rejects_missing_delimiter(expect, generated):
        finger = generated("finger.json")
        result = finger.parse_finger_forward(b"bob\n")
        expect(result.state) == "EXPECT_DELIMITER"
        expect(result.offset) == 3
        expect(result.expected) == "|"

    def rejects_values_containing_the_delimiter(expect, generated):
        finger = generated("finger.json")
        result = finger.serialize_finger_forward(finger.FingerForward(user="a|b", host="h"))
        expect([(e.field, e.constraint) for e in result.errors]) == [("user", "contains_stop")]

    def carries_retry_settings(expect, generated):
        finger = generated("finger.json")
        expect(finger.FingerClient.keep_alive) == True
        expect(finger.FingerClient.read_until_close) == False
        expect(finger.FingerClient.retry_attempts) == 2
        expect(finger.FingerClient.retry_delay) == 0.01

    def round_trips_forward_messages(expect, generated):
        finger = generated("finger.json")
        words = st.text(alphabet="abcdefghij.-", min_size=1, max_size=12)

        @settings(max_examples=50)
        @given(user=words, host=words, port=st.integers(min_value=0, max_value=65535))
        def check(user, host, port):
            message = finger.FingerForward(user=user, host=host, port=port)
            data = finger.serialize_finger_forward(message).data
            parsed = finger.parse_finger_forward(data)
            assert parsed.message == message
            assert parsed.bytes_consumed == len(data)

        check()


def describe_render():
    def names_modules_after_the_protocol(expect, compiled):
        files = python.render(compiled("finger.json"))
        expect(sorted(files)) == [
            "__init__.py",
            "finger_client.py",
            "finger_parser.py",
            "finger_serializer.py",
            "test_finger.py",
        ]

    def imports_the_configured_runtime(expect, compiled):
        files = python.render(compiled("finger.json"), runtime_import="vendor.wirecraft_runtime")
        expect("from vendor.wirecraft_runtime import (" in files["finger_parser.py"]) == True

    def declares_enum_types(expect, compiled):
        parser = python.render(compiled("gopher.json"))["gopher_parser.py"]
        expect("class ItemType(Enum):" in parser) == True
        expect('DIRECTORY = "1"' in parser) == True

    def lists_runtime_files(expect):
        expect(sorted(python.runtime())) == sorted(python.RUNTIME_FILES)


def describe_tagged():
    def describe_fixed_width_optional_field():
        def reads_present_value(expect, generated):
            tagged = generated("tagged.json")
            result = tagged.parse_labelled(b"xy:ab\r\n")
            expect(result.message) == tagged.Labelled(tag=b"xy", name="ab")

        def is_absent_when_literal_does_not_follow(expect, generated):
            tagged = generated("tagged.json")
            result = tagged.parse_labelled(b":ab\r\n")
            expect(result.ok) == True
            expect(result.message) == tagged.Labelled(tag=None, name="ab")
            expect(result.bytes_consumed) == 5

        def round_trips_absent_value(expect, generated):
            tagged = generated("tagged.json")
            message = tagged.Labelled(name="ab")
            data = tagged.serialize_labelled(message).data
            expect(data) == b":ab\r\n"
            expect(tagged.parse_labelled(data).message) == message

    def describe_scanned_optional_field():
        def is_absent_when_read_stops_at_another_separator(expect, generated):
            tagged = generated("tagged.json")
            result = tagged.parse_address(b"80\r\n")
            expect(result.ok) == False
            expect(result.state) == "EXPECT_DELIMITER"
            expect(result.offset) == 0
            expect(result.expected) == ":"

        def reads_present_value(expect, generated):
            tagged = generated("tagged.json")
            result = tagged.parse_address(b"example.org:70\r\n")
            expect(result.message) == tagged.Address(host="example.org", port=70)

        def is_absent_before_delimiter(expect, generated):
            tagged = generated("tagged.json")
            result = tagged.parse_address(b":70\r\n")
            expect(result.message) == tagged.Address(host=None, port=70)

    def describe_empty_optional_values():
        def are_rejected_by_validation(expect, generated):
            tagged = generated("tagged.json")
            result = tagged.serialize_note(tagged.Note(note=""))
            expect(result.ok) == False
            expect([(e.field, e.constraint) for e in result.errors]) == [("note", "empty")]

        def are_rejected_for_fields_with_defaults(expect, generated):
            tagged = generated("tagged.json")
            errors = tagged.validate_greeting(tagged.Greeting(who=""))
            expect([e.constraint for e in errors]) == ["empty"]

        def leave_absent_values_alone(expect, generated):
            tagged = generated("tagged.json")
            expect(tagged.serialize_note(tagged.Note()).data) == b"NOTE \r\n"
            expect(tagged.parse_note(b"NOTE \r\n").message) == tagged.Note(note=None)

    def runs_the_generated_tests(expect, generated):
        tagged = generated("tagged.json")
        tests = importlib.import_module(tagged.__name__ + ".test_tagged")
        names = sorted(name for name in dir(tests) if name.endswith("_round_trip") or name.endswith("_example"))
        expect(len(names)) == 8
        for name in names:
            getattr(tests, name)()
