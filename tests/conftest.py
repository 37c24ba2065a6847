"""Shared filing fixtures."""

from decimal import Decimal

import pytest

from sec_metrics.models import ExtendedFinancialMetric, MetricCategory


STATEMENT_TEXT = """PART I
Item 8. Financial Statements and Supplementary Data

CONSOLIDATED STATEMENTS OF OPERATIONS
(in millions, except per share data)
For the Year Ended December 31, 2024
| | 2024 | 2023 |
| Total revenue | $ 1,200 | $ 1,000 |
| Cost of revenue | 700 | 600 |
| Gross profit | 500 | 400 |
| Operating income | 240 | 200 |
| Net income | 150 | 120 |

CONSOLIDATED STATEMENTS OF CASH FLOWS
(in millions)
| | 2024 | 2023 |
| Net cash provided by operating activities | 400 | 350 |
| Capital expenditures | (120) | (100) |

CONSOLIDATED BALANCE SHEETS
(in millions)
| | 2024 | 2023 |
| Total current assets | 300 | 280 |
| Total assets | 2,000 | 1,800 |
| Total current liabilities | 150 | 160 |
| Total liabilities | 1,200 | 1,100 |
| Total stockholders' equity | 800 | 700 |

NOTES TO CONSOLIDATED FINANCIAL STATEMENTS
Note 1. Summary of significant accounting policies.
"""


IXBRL_DOC = """<html xmlns="http://www.w3.org/1999/xhtml"
      xmlns:ix="http://www.xbrl.org/2013/inlineXBRL"
      xmlns:xbrli="http://www.xbrl.org/2003/instance"
      xmlns:xbrldi="http://xbrl.org/2006/xbrldi"
      xmlns:us-gaap="http://fasb.org/us-gaap/2024"
      xmlns:dei="http://xbrl.sec.gov/dei/2024">
<head><title>10-K</title></head>
<body>
<div style="display:none"><ix:header><ix:resources>
<xbrli:context id="FY2024">
  <xbrli:entity><xbrli:identifier scheme="http://www.sec.gov/CIK">0000320193</xbrli:identifier></xbrli:entity>
  <xbrli:period><xbrli:startDate>2024-01-01</xbrli:startDate><xbrli:endDate>2024-12-31</xbrli:endDate></xbrli:period>
</xbrli:context>
<xbrli:context id="FY2023">
  <xbrli:entity><xbrli:identifier scheme="http://www.sec.gov/CIK">0000320193</xbrli:identifier></xbrli:entity>
  <xbrli:period><xbrli:startDate>2023-01-01</xbrli:startDate><xbrli:endDate>2023-12-31</xbrli:endDate></xbrli:period>
</xbrli:context>
<xbrli:context id="AsOf2024">
  <xbrli:entity><xbrli:identifier scheme="http://www.sec.gov/CIK">0000320193</xbrli:identifier></xbrli:entity>
  <xbrli:period><xbrli:instant>2024-12-31</xbrli:instant></xbrli:period>
</xbrli:context>
<xbrli:context id="Product2024">
  <xbrli:entity>
    <xbrli:identifier scheme="http://www.sec.gov/CIK">0000320193</xbrli:identifier>
    <xbrli:segment><xbrldi:explicitMember dimension="srt:ProductOrServiceAxis">us-gaap:ProductMember</xbrldi:explicitMember></xbrli:segment>
  </xbrli:entity>
  <xbrli:period><xbrli:startDate>2024-01-01</xbrli:startDate><xbrli:endDate>2024-12-31</xbrli:endDate></xbrli:period>
</xbrli:context>
</ix:resources></ix:header></div>
<table>
<tr><td>Total net sales</td>
<td>$ <ix:nonFraction name="us-gaap:Revenues" contextRef="FY2024" unitRef="usd" decimals="-6" scale="6">383,285</ix:nonFraction></td>
<td>$ <ix:nonFraction name="us-gaap:Revenues" contextRef="FY2023" unitRef="usd" decimals="-6" scale="6">365,817</ix:nonFraction></td></tr>
<tr><td>Products</td>
<td><ix:nonFraction name="us-gaap:Revenues" contextRef="Product2024" unitRef="usd" decimals="-6" scale="6">294,866</ix:nonFraction></td></tr>
<tr><td>Net income</td>
<td><ix:nonFraction name="us-gaap:NetIncomeLoss" contextRef="FY2024" unitRef="usd" decimals="-6">96,995</ix:nonFraction></td></tr>
<tr><td>Total assets</td>
<td><ix:nonFraction name="us-gaap:Assets" contextRef="AsOf2024" unitRef="usd" decimals="-6" scale="6">352,583</ix:nonFraction></td></tr>
<tr><td>Diluted</td>
<td><ix:nonFraction name="us-gaap:EarningsPerShareDiluted" contextRef="FY2024" unitRef="usdPerShare" decimals="2">6.11</ix:nonFraction></td></tr>
<tr><td>Operating loss</td>
<td>(<ix:nonFraction name="us-gaap:OperatingIncomeLoss" contextRef="FY2024" unitRef="usd" decimals="-6" scale="6" sign="-">1,500</ix:nonFraction>)</td></tr>
<tr><td>Employees</td>
<td><ix:nonFraction name="dei:EntityNumberOfEmployees" contextRef="FY2024" unitRef="pure" decimals="INF">161,000</ix:nonFraction></td></tr>
</table>
</body>
</html>
"""


@pytest.fixture
def statement_text() -> str:
    return STATEMENT_TEXT


@pytest.fixture
def ixbrl_doc() -> str:
    return IXBRL_DOC


def make_metric(
    category: MetricCategory,
    value: str,
    confidence: float = 0.9,
    name: str | None = None,
) -> ExtendedFinancialMetric:
    return ExtendedFinancialMetric(
        name=name or category.value,
        display_value=value,
        raw_value=Decimal(value),
        category=category,
        confidence=confidence,
    )


@pytest.fixture
def metric():
    return make_metric
