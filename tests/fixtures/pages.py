"""Sample site pages for parser and worker tests."""


def detail_page(
    item_id: int = 42,
    title: str = "Ubuntu 24.04 Desktop amd64",
    size: str = "2.5&nbsp;GiB",
    category: str = "Linux ISOs",
    seeders: str = "12",
    leechers: str = "3",
) -> str:
    """An item page in the layout the parser expects."""
    return f"""<html>
<head><title>Torrent info</title></head>
<body>
<h1>Torrent info</h1>
<table class="main">
\t<tr>
\t\t<td ><b><a href="gettorrent.php?fid={item_id}">{title}</a></b></td>
\t\t<td width="1"><a href="comments.php?fid={item_id}">0</a></td>
\t\t<td>2024-03-01 12:00</td>
\t\t<td width="70">{size}</td>
\t\t<td>17</td>
\t\t<td width="1"><img src="pic/cats/linux.png" border="0" alt="{category}" /></td>
\t\t<td>{seeders}</td>
\t\t<td>{leechers}</td>
\t</tr>
</table>
</body>
</html>
""".replace("\n", "\r\n")


NOT_FOUND_PAGE = """<html>
<body>
<div class="error">Torrent not found</div>
</body>
</html>
"""

# A maintenance page: neither marker is present
MAINTENANCE_PAGE = """<html>
<body>
<h1>Site under maintenance</h1>
</body>
</html>
"""

# Detail marker present but the row layout changed
CHANGED_LAYOUT_PAGE = """<html>
<body>
<h1>Torrent info</h1>
<div class="torrent">
  <a href="gettorrent.php?fid=7">Some title</a>
</div>
</body>
</html>
"""

LISTING_PAGE = """<html>
<body>
<table>
<tr><td><a href="torrentprofile.php?fid=1205">Newest upload</a></td></tr>
<tr><td><a href="torrentprofile.php?fid=1204">Older upload</a></td></tr>
<tr><td><a href="torrentprofile.php?fid=1190">Even older</a></td></tr>
</table>
</body>
</html>
"""

EMPTY_LISTING_PAGE = """<html><body><p>Nothing here yet.</p></body></html>"""
