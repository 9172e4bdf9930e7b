"""
Relay 测试配置文件

这个文件包含 pytest fixtures（测试夹具）。
Fixtures 是测试的"准备工作"——在测试运行前创建所需的对象和环境。

关键概念：
- FakeUpstream：模拟 pixiv（API、作品页面、图片 CDN），记录收到的每个请求
- httpx.MockTransport：把上游请求交给 FakeUpstream 处理，不访问网络
- httpx.ASGITransport：直接调用 FastAPI 应用，不监听端口
"""

import re
import sys
import json
import html
from pathlib import Path

import httpx
import pytest

# 添加 backend 目录到 Python 路径
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from pixiv_relay.app import create_app
from pixiv_relay.config import RelaySettings


# ============================================
# 模拟上游
# ============================================

IMAGE_HOST = "i.pximg.net"
IMAGE_NAME_RE = re.compile(r"/(\d+)_p(\d+)_master1200\.jpg$")


class FakeUpstream:
    """
    模拟 pixiv 的三个端点。

    使用方式：
    ```python
    upstream.add_illust("100", page_count=3)
    upstream.requests_to("/ajax/illust/")   # 查看收到的请求
    ```
    """

    def __init__(self):
        self.illusts = {}            # illust_id -> page_count
        self.requests = []           # 收到的所有 httpx.Request
        self.unreachable_hosts = set()
        self.overrides = {}          # URL path -> httpx.Response

    def add_illust(self, illust_id: str, page_count: int = 1) -> None:
        self.illusts[illust_id] = page_count

    @staticmethod
    def image_url(illust_id: str, index: int = 0) -> str:
        return f"https://{IMAGE_HOST}/img-master/img/2024/01/02/03/04/05/{illust_id}_p{index}_master1200.jpg"

    @staticmethod
    def image_bytes(illust_id: str, index: int = 0) -> bytes:
        # JPEG 文件头 + 足够长的内容，方便检查是否被截断
        return b"\xff\xd8\xff\xe0" + f"{illust_id}:{index};".encode() * 4096

    def illust_payload(self, illust_id: str) -> dict:
        return {
            "illustId": illust_id,
            "illustTitle": "test",
            "pageCount": self.illusts[illust_id],
            "urls": {
                "mini": self.image_url(illust_id).replace("master1200", "square1200"),
                "regular": self.image_url(illust_id),
                "original": None,
            },
        }

    def requests_to(self, fragment: str) -> list:
        return [r for r in self.requests if fragment in str(r.url)]

    # ------------------------------------------
    # 请求处理
    # ------------------------------------------

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if request.url.host in self.unreachable_hosts:
            raise httpx.ConnectError("connection refused", request=request)

        path = request.url.path
        if path in self.overrides:
            return self.overrides[path]

        if request.url.host == "www.pixiv.net":
            if path.startswith("/ajax/illust/"):
                return self._api(path.rsplit("/", 1)[-1])
            if path.startswith("/en/artworks/"):
                return self._artwork_page(path.rsplit("/", 1)[-1])

        if request.url.host == IMAGE_HOST:
            return self._image(path)

        return httpx.Response(404)

    def _api(self, illust_id: str) -> httpx.Response:
        if illust_id not in self.illusts:
            return httpx.Response(404, json={
                "error": True,
                "message": "Work has been deleted or the ID does not exist.",
                "body": [],
            })
        return httpx.Response(200, json={
            "error": False,
            "message": "",
            "body": self.illust_payload(illust_id),
        })

    def _artwork_page(self, illust_id: str) -> httpx.Response:
        if illust_id not in self.illusts:
            return httpx.Response(404, text="<html><body>404</body></html>")
        return httpx.Response(200, text=artwork_page({"illust": {illust_id: self.illust_payload(illust_id)}}))

    def _image(self, path: str) -> httpx.Response:
        match = IMAGE_NAME_RE.search(path)
        if not match:
            return httpx.Response(404)
        illust_id, index = match.group(1), int(match.group(2))
        if index >= self.illusts.get(illust_id, 0):
            return httpx.Response(404)
        return httpx.Response(
            200,
            content=self.image_bytes(illust_id, index),
            headers={"Content-Type": "image/jpeg"},
        )


def artwork_page(preload: dict) -> str:
    """生成带 preload JSON 的作品页面"""
    content = html.escape(json.dumps(preload), quote=True)
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>pixiv</title>
<meta name="global-data" id="meta-global-data" content="{{}}">
<meta name="preload-data" id="meta-preload-data" content="{content}">
</head>
<body><div id="root"></div></body>
</html>"""


# ============================================
# Fixtures
# ============================================

@pytest.fixture
def upstream():
    """每个测试一个全新的模拟上游"""
    return FakeUpstream()


@pytest.fixture
def settings(tmp_path):
    """默认配置：不缓存到磁盘，只用 API 获取元数据"""
    return RelaySettings(
        Port=8080,
        UserAgent="Mozilla/5.0 (TestAgent)",
        Cookies="PHPSESSID=test-session",
        StorePath=tmp_path / "store",
    )


@pytest.fixture
def caching_settings(settings):
    """开启磁盘缓存的配置"""
    return settings.model_copy(update={"cache_to_disk": True})


@pytest.fixture
async def http_client(upstream):
    """连接到模拟上游的 httpx 客户端"""
    client = httpx.AsyncClient(transport=httpx.MockTransport(upstream.handler))
    yield client
    await client.aclose()


@pytest.fixture
def make_relay(http_client):
    """
    创建 relay 应用并返回调用它的客户端。

    使用方式：
    ```python
    async with make_relay(settings) as relay:
        response = await relay.get("/100.jpg")
    ```
    """
    def _make(relay_settings: RelaySettings) -> httpx.AsyncClient:
        app = create_app(relay_settings, http_client=http_client)
        return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://relay")

    return _make


# ============================================
# Helper Functions
# ============================================

def assert_error_response(response: httpx.Response, status_code: int):
    """
    断言错误响应：状态码正确、空 body、text/plain。
    """
    assert response.status_code == status_code, \
        f"Expected {status_code}, got {response.status_code}"
    assert response.content == b""
    assert response.headers["content-type"].startswith("text/plain")
