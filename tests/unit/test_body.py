"""
Unit tests for Content-Length bounded body reads.
"""

import pytest

from rawhttpd.http.body import content_length, read_body


class TestContentLength:
    """Tests for content_length."""

    def test_present(self):
        """Test a numeric Content-Length."""
        assert content_length({"content-length": "12"}) == 12

    def test_missing(self):
        """Test that a missing Content-Length is zero."""
        assert content_length({}) == 0

    @pytest.mark.parametrize("value", ["", "ten", "1.5", "-1"])
    def test_invalid_is_zero(self, value):
        """Test that unparseable or negative values count as zero."""
        assert content_length({"content-length": value}) == 0


class TestReadBody:
    """Tests for read_body."""

    def test_exact_length(self, make_source):
        """Test that exactly Content-Length bytes are taken."""
        source = make_source(b"hello worldGET / HTTP/1.1\r\n")
        body = read_body({"content-length": "11"}, source)

        assert body == b"hello world"
        assert source.remaining == b"GET / HTTP/1.1\r\n"

    def test_body_spanning_reads(self, make_source):
        """Test a body split over several arrivals."""
        source = make_source(b"ab", b"cd", b"ef")
        assert read_body({"content-length": "6"}, source) == b"abcdef"

    def test_chunk_size_bounds_each_read(self, make_source):
        """Test that no single read exceeds chunk_size."""
        data = b"x" * 2500
        source = make_source(data)
        reads = []
        original = source.read

        def tracking_read(size):
            reads.append(size)
            return original(size)

        source.read = tracking_read
        assert read_body({"content-length": "2500"}, source, chunk_size=1024) == data
        assert max(reads) <= 1024
        assert len(reads) == 3

    def test_short_stream_returns_partial(self, make_source):
        """Test that a stream ending early yields what arrived."""
        source = make_source(b"abc")
        assert read_body({"content-length": "10"}, source) == b"abc"

    def test_timeout_returns_partial(self, make_failing_source):
        """Test that a deadline mid-body yields what arrived."""
        source = make_failing_source(b"abc")
        assert read_body({"content-length": "10"}, source) == b"abc"

    def test_no_length_reads_whats_available(self, make_source):
        """Test that without Content-Length only buffered bytes are taken."""
        source = make_source(b"line\r\nbuffered", b"later")
        assert source.readline() == b"line\r\n"

        assert read_body({}, source) == b"buffered"
        assert source.remaining == b"later"

    def test_no_length_nothing_available(self, make_source):
        """Test that without Content-Length an idle stream gives b''."""
        source = make_source(b"not yet arrived")
        assert read_body({}, source) == b""

    def test_no_length_error_is_empty(self, make_source):
        """Test that a read error without Content-Length gives b''."""
        source = make_source()

        def broken(size):
            raise ConnectionResetError("reset")

        source.read_available = broken
        assert read_body({}, source) == b""
