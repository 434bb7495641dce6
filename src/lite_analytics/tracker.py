"""
Client beacon script.

Features:
- Pageview on initial load and on every client-side navigation
  (history.pushState and popstate)
- Skips a repeated pageview while path + query are unchanged
- Custom events via window.liteAnalytics.track(name, props)
- UTM parameters copied from the page URL
- navigator.sendBeacon with a text/plain body so cross-origin sends need no
  CORS preflight and survive page unload; XHR fallback
- No cookies, no storage, no identifiers
"""
from html import escape

TRACKER_JS = r"""(function(){
  "use strict";
  try {
    var s=document.currentScript;if(!s)return;
    var w=window,d=document,h=w.history,l=w.location,n=navigator;
    var host=s.getAttribute("data-host")||"";
    var site=s.getAttribute("data-website-id")||"";
    var path=s.getAttribute("data-endpoint")||"/api/send";
    if(!host&&s.src.indexOf("http")===0){try{host=new URL(s.src).origin}catch(e){}}
    var endpoint=host+path,last="";
    var UTM=["utm_source","utm_medium","utm_campaign","utm_term","utm_content"];

    function send(body){
      if(n.sendBeacon){n.sendBeacon(endpoint,new Blob([body],{type:"text/plain"}));return}
      var x=new XMLHttpRequest();
      x.open("POST",endpoint,true);
      x.setRequestHeader("Content-Type","text/plain");
      x.send(body);
    }

    function track(type,extra){
      try {
        var current=l.pathname+l.search;
        if(type==="pageview"){if(current===last)return;last=current}
        var data={
          type:type,
          pathname:l.pathname,
          hostname:l.hostname,
          referrer:d.referrer||undefined,
          screen_width:w.screen.width,
          language:(n.language||"").split("-")[0],
          website_id:site||undefined
        };
        if(extra){for(var k in extra){if(Object.prototype.hasOwnProperty.call(extra,k))data[k]=extra[k]}}
        var q=new URLSearchParams(l.search);
        UTM.forEach(function(f){if(q.has(f))data[f]=q.get(f)});
        send(JSON.stringify(data));
      } catch(e) {}
    }

    if(h.pushState){
      var push=h.pushState;
      h.pushState=function(){var r=push.apply(h,arguments);track("pageview");return r};
    }
    w.addEventListener("popstate",function(){track("pageview")});

    if(d.readyState!=="loading")track("pageview");
    else d.addEventListener("DOMContentLoaded",function(){track("pageview")});

    w.liteAnalytics={track:function(name,props){track("custom",{event_name:name,properties:props})}};
  } catch(e) {}
})();
"""


def tracking_script(
    script_url: str,
    website_id: str | None = None,
    host: str | None = None,
    endpoint: str | None = None,
) -> str:
    """Generate the <script> tag a site embeds.

    Args:
        script_url: Where tracker.js is served
        website_id: Pin beacons to a site id instead of relying on Origin
        host: Origin that receives beacons, when it differs from script_url's
        endpoint: Collect path on that origin, when it is not /api/send
    """
    attrs = [f'src="{escape(script_url)}"', "defer"]
    if website_id:
        attrs.append(f'data-website-id="{escape(website_id)}"')
    if host:
        attrs.append(f'data-host="{escape(host)}"')
    if endpoint and endpoint != "/api/send":
        attrs.append(f'data-endpoint="{escape(endpoint)}"')
    return f"<script {' '.join(attrs)}></script>"
