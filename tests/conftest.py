import pytest


COMMON_LINE = '127.0.0.1 - frank [10/Oct/2000:13:55:36 -0700] "GET /apache_pb.gif?size=large HTTP/1.0" 200 2326'
COMBINED_LINE = (
    '203.0.113.9 - - [10/Oct/2000:13:55:36 -0700] "GET /index.html?lang=en HTTP/1.1" 304 - '
    '"https://example.com/start" "Mozilla/5.0 (X11; Linux x86_64)"'
)
GOROUTER_LINE = (
    'app1.apps.example.com - [2019-12-20T12:41:32.218+0000] "GET /v2/info?x=1 HTTP/1.1" 200 0 1256 '
    '"-" "curl/7.58.0" "10.0.1.1:55010" "10.0.2.2:8080" x_forwarded_for:"1.2.3.4, 10.0.1.1" '
    'x_forwarded_proto:"https" vcap_request_id:"abc-123" response_time:0.012 gorouter_time:0.000291 '
    'app_id:"4d0a8c2e-1111-2222-3333-444455556666" app_index:"0" x_cf_routererror:"-" '
    'x_b3_traceid:"deadbeef"'
)
CLOUD_CONTROLLER_LINE = (
    'api.sys.example.com - [01/Feb/2019:20:45:02 +0000] "GET /v2/spaces/a91c/summary HTTP/1.1" 200 53188 '
    '"-" "cf_exporter/" 172.26.28.115, 172.26.31.254 '
    'vcap_request_id:01144087-1a30-4d4f-a4e8-fd6f5b2dfa9b::9a7d response_time:0.009'
)


@pytest.fixture
def common_line():
    """Build a Common log line for a request to ``path``."""

    def build(path="/a", status=200, method="GET", timestamp="10/Oct/2000:13:55:36 -0700"):
        return f'127.0.0.1 - - [{timestamp}] "{method} {path} HTTP/1.1" {status} 512'

    return build


@pytest.fixture
def gorouter_line():
    """Build a Gorouter log line with the given timings."""

    def build(
        path="/v2/info",
        status=200,
        response_time="0.012",
        gorouter_time="0.000291",
        timestamp="2019-12-20T12:41:32.218+0000",
        router_error="-",
    ):
        return (
            f'app1.apps.example.com - [{timestamp}] "GET {path} HTTP/1.1" {status} 0 1256 '
            f'"-" "curl/7.58.0" "10.0.1.1:55010" "10.0.2.2:8080" x_forwarded_for:"1.2.3.4, 10.0.1.1" '
            f'x_forwarded_proto:"https" vcap_request_id:"abc-123" response_time:{response_time} '
            f'gorouter_time:{gorouter_time} app_id:"4d0a8c2e-1111-2222-3333-444455556666" '
            f'app_index:"0" x_cf_routererror:"{router_error}"'
        )

    return build


@pytest.fixture
def write_log(tmp_path):
    """Write lines to a log file under tmp_path and return its path as a string."""

    def write(lines, name="access.log"):
        path = tmp_path / name
        path.write_text("".join(line + "\n" for line in lines), encoding="utf-8")
        return str(path)

    return write
