"""Test configuration and fixtures."""

from datetime import datetime, timedelta

import pytest

from ekistamp.core.config import Settings
from ekistamp.crawler.job_queue import JobQueue
from ekistamp.db import create_session_factory


class MutableClock:
    """Clock returning a fixed time until advanced."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def sample_detail_html():
    """Sample stamp detail page."""
    return """
    <html><body>
    <div class="articleHeader">
        <h2>東京駅のスタンプ</h2>
        <p class="date">JR東日本のスタンプ</p>
    </div>
    <div class="articleBody">
        <p>駅名称：東京駅（とうきょう）<br>EN: Tokyo<br>所在地：〒100-0005 東京都千代田区丸の内1丁目<br>Geo URI: geo:35.681236,139.767125</p>
        <details open>
            <summary>設置中のスタンプ</summary>
            <h5>東京駅スタンプ</h5>
            <p><img src="/img/tokyo.jpg" alt="東京駅"></p>
            <p>丸の内駅舎が描かれたスタンプ</p>
            <p>設置場所：改札内 みどりの窓口横<br>サイズ：縦5cm×横5cm<br>色：赤<br>設置期間：2020年4月1日～2021年3月31日<br>スタンプを押した日：2020年5月1日</p>
            <hr>
        </details>
        <details>
            <summary>廃止されたスタンプ</summary>
            <h5>旧東京駅スタンプ</h5>
            <p>直径6cmの円形<br>色：青</p>
        </details>
    </div>
    </body></html>
    """


@pytest.fixture
def sample_index_html():
    """Sample line index page."""
    return """
    <html><body>
    <ul class="allArticleList">
        <li><a href="https://stamp.funakiya.com/tokyo.html">東京</a></li>
        <li><a href="https://stamp.funakiya.com/kanda.html">神田</a></li>
        <li><a href="https://stamp.funakiya.com/tokyo.html">東京（再掲）</a></li>
        <li><a href="https://example.com/other.html">外部サイト</a></li>
        <li><a href="https://stamp.funakiya.com/about/">このサイトについて</a></li>
    </ul>
    <a href="https://stamp.funakiya.com/sidebar.html">サイドバー</a>
    </body></html>
    """


@pytest.fixture
def clock():
    """Controllable job queue clock."""
    return MutableClock(datetime(2024, 4, 1, 9, 0, 0))


@pytest.fixture
def settings():
    """Settings without request pauses or retry waits."""
    return Settings(min_request_interval=0, retry_initial_wait=0)


@pytest.fixture
def job_queue(clock, settings):
    """Job queue on a fresh in-memory SQLite database."""
    return JobQueue(create_session_factory("sqlite://"), settings, clock=clock)
