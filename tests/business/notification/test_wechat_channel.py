"""Tests for WeChatChannel with the HTTP layer mocked"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from src.business.errors import UpstreamError
from src.business.notification.channels.base import ChannelMessage, Credentials, SendStatus
from src.business.notification.channels.token_cache import AccessTokenCache
from src.business.notification.channels.wechat import WeChatChannel, WeChatMessageBuilder

MODULE = "src.business.notification.channels.wechat.requests"


def _response(payload, status_code=200):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    response.text = str(payload)
    return response


TOKEN_OK = _response({"access_token": "ACCESS", "expires_in": 7200})


class TestWeChatChannel:
    """Token exchange, send and follow status"""

    @pytest.fixture
    def channel(self):
        return WeChatChannel(token_cache=AccessTokenCache())

    @pytest.fixture
    def creds(self):
        return Credentials(app_id="wx123", app_secret="secret")

    def test_text_send_success(self, channel, creds):
        with patch(f"{MODULE}.get", return_value=TOKEN_OK) as mock_get, \
                patch(f"{MODULE}.post", return_value=_response({"errcode": 0, "errmsg": "ok"})) as mock_post:
            result = channel.send(ChannelMessage("oUSER", "标题", "内容"), creds)

        assert result.status == SendStatus.SUCCESS
        assert mock_get.call_args.kwargs["params"]["grant_type"] == "client_credential"
        url = mock_post.call_args.args[0]
        assert url.endswith("/cgi-bin/message/custom/send")
        assert mock_post.call_args.kwargs["params"] == {"access_token": "ACCESS"}
        assert mock_post.call_args.kwargs["json"]["text"]["content"] == "标题\n\n内容"

    def test_template_send_returns_msgid(self, channel, creds):
        with patch(f"{MODULE}.get", return_value=TOKEN_OK), \
                patch(f"{MODULE}.post", return_value=_response({"errcode": 0, "msgid": 123})) as mock_post:
            result = channel.send(ChannelMessage("oUSER", "告警", "磁盘满", template_id="TPL"), creds)

        assert result.is_success
        assert result.message_id == "123"
        payload = mock_post.call_args.kwargs["json"]
        assert mock_post.call_args.args[0].endswith("/cgi-bin/message/template/send")
        assert payload["template_id"] == "TPL"
        assert payload["data"]["first"]["value"] == "告警"
        assert payload["data"]["keyword1"]["value"] == "磁盘满"

    def test_upstream_rejection_is_failed_result(self, channel, creds):
        with patch(f"{MODULE}.get", return_value=TOKEN_OK), \
                patch(f"{MODULE}.post", return_value=_response({"errcode": 43004, "errmsg": "require subscribe"})):
            result = channel.send(ChannelMessage("oUSER", "t"), creds)

        assert result.status == SendStatus.FAILED
        assert result.error == "43004: require subscribe"

    def test_timeout_is_failed_result(self, channel, creds):
        with patch(f"{MODULE}.get", return_value=TOKEN_OK), \
                patch(f"{MODULE}.post", side_effect=requests.Timeout()):
            result = channel.send(ChannelMessage("oUSER", "t"), creds)

        assert not result.is_success
        assert result.error == "Request timeout"

    def test_token_error_is_failed_result(self, channel, creds):
        with patch(f"{MODULE}.get", return_value=_response({"errcode": 40125, "errmsg": "invalid appsecret"})):
            result = channel.send(ChannelMessage("oUSER", "t"), creds)
        assert not result.is_success
        assert "40125" in result.error

    def test_token_is_cached_per_credentials(self, channel, creds):
        with patch(f"{MODULE}.get", return_value=TOKEN_OK) as mock_get, \
                patch(f"{MODULE}.post", return_value=_response({"errcode": 0})):
            channel.send(ChannelMessage("u1", "t"), creds)
            channel.send(ChannelMessage("u2", "t"), creds)
            assert mock_get.call_count == 1

            channel.send(ChannelMessage("u1", "t"), Credentials("wx999", "other"))
            assert mock_get.call_count == 2

    def test_invalid_token_clears_cache(self, channel, creds):
        with patch(f"{MODULE}.get", return_value=TOKEN_OK) as mock_get, \
                patch(f"{MODULE}.post", return_value=_response({"errcode": 40001, "errmsg": "invalid credential"})):
            channel.send(ChannelMessage("u1", "t"), creds)
            channel.send(ChannelMessage("u1", "t"), creds)
        assert mock_get.call_count == 2

    def test_injected_empty_cache_is_kept(self):
        cache = AccessTokenCache()
        assert WeChatChannel(token_cache=cache).token_cache is cache

    def test_incomplete_credentials(self, channel):
        result = channel.send(ChannelMessage("u1", "t"), Credentials("wx", ""))
        assert not result.is_success

    def test_validate(self, channel, creds):
        with patch(f"{MODULE}.get", return_value=TOKEN_OK):
            assert channel.validate(creds).valid
        assert not channel.validate(Credentials("", "")).valid

    @pytest.mark.parametrize("payload,subscribed", [
        ({"subscribe": 1, "nickname": "张三"}, True),
        ({"subscribe": 0}, False),
        ({"errcode": 40003, "errmsg": "invalid openid"}, False),
    ])
    def test_check_follow_status(self, channel, creds, payload, subscribed):
        with patch(f"{MODULE}.get", side_effect=[TOKEN_OK, _response(payload)]):
            status = channel.check_follow_status(creds, "oUSER")
        assert status.subscribed is subscribed

    def test_exchange_oauth_code(self, channel, creds):
        responses = [
            _response({"access_token": "WEB", "openid": "oUSER", "scope": "snsapi_userinfo"}),
            _response({"openid": "oUSER", "nickname": "张三"}),
        ]
        with patch(f"{MODULE}.get", side_effect=responses) as mock_get:
            identity = channel.exchange_oauth_code(creds, "CODE")

        assert identity.platform_user_id == "oUSER"
        assert identity.nickname == "张三"
        assert mock_get.call_args_list[0].kwargs["params"]["grant_type"] == "authorization_code"

    def test_exchange_oauth_code_failure(self, channel, creds):
        with patch(f"{MODULE}.get", return_value=_response({"errcode": 40029, "errmsg": "invalid code"})):
            with pytest.raises(UpstreamError):
                channel.exchange_oauth_code(creds, "BAD")

    def test_build_authorize_url(self, channel):
        url = channel.build_authorize_url("wx123", "https://push.example/bind/app_1/callback", "STATE")
        assert url.startswith("https://open.weixin.qq.com/connect/oauth2/authorize?appid=wx123")
        assert "redirect_uri=https%3A%2F%2Fpush.example%2Fbind%2Fapp_1%2Fcallback" in url
        assert "scope=snsapi_userinfo" in url
        assert "state=STATE" in url
        assert url.endswith("#wechat_redirect")


class TestWeChatMessageBuilder:
    """Payload construction"""

    def test_text_without_body(self):
        payload = WeChatMessageBuilder.text_message(ChannelMessage("u", "only title"))
        assert payload == {"touser": "u", "msgtype": "text", "text": {"content": "only title"}}

    def test_template_default_body(self):
        payload = WeChatMessageBuilder.template_message(ChannelMessage("u", "t", template_id="TPL"))
        assert payload["data"]["keyword1"]["value"] == "无内容"
        assert "url" not in payload
