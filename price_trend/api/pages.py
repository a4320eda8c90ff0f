from __future__ import annotations

INDEX_BODY = (
    "<div id='price_chart_container'><canvas id='price_chart'></canvas></div><br/>"
    "<div id='slider'></div><br/>"
    "<span id='begin'></span> - <span id='end'></span>"
    "<img src='static/loading.gif' id='spinner'/>"
)
INDEX_HEAD = "<script>$( function() {chart_init();});</script>"

NOT_FOUND_BODY = "<h1>Not Found</h1><a href='/'>Return to Home</a>"


def html_construct(title: str, head_extra: str, body: str) -> str:
    """
    Wraps page-specific content in the shared HTML document.

    Every page pulls in the same external scripts (jQuery, jQuery UI, moment,
    Chart.js) and the app's own static/main.js + static/main.css.
    """
    return f"""<!DOCTYPE html>
<html>
 <head>
  <meta charset='utf-8'/>
  <meta http-equiv='X-UA-Compatible' content='IE=edge'/>
  <meta name='viewport' content='height=device-height, width=device-width, initial-scale=1'/>
  <link rel='shortcut icon' href='static/favicon.ico'/>
  <script src='https://unpkg.com/jquery@3.5.1/dist/jquery.min.js'></script>
  <link rel='stylesheet' href='https://code.jquery.com/ui/1.12.1/themes/base/jquery-ui.css'/>
  <script src='https://code.jquery.com/ui/1.12.1/jquery-ui.min.js'></script>
  <script src='https://unpkg.com/moment@2.19.3/min/moment-with-locales.min.js'></script>
  <script src='https://unpkg.com/chart.js@2.7.1/dist/Chart.min.js'></script>
  <script src='static/main.js'></script>
  <link rel='stylesheet' href='static/main.css'/>
  {head_extra}
  <title>{title}</title>
 </head>
 <body>
 {body}
 </body>
</html>"""


def index_page() -> str:
    return html_construct("Home - Price Trend", INDEX_HEAD, INDEX_BODY)


def not_found_page() -> str:
    return html_construct("Not Found - Price Trend", "", NOT_FOUND_BODY)
