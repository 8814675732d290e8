"""
聚合构建器单元测试

测试 elastic_devtools/search/aggregation_builder.py 与 aggregations.py。
"""

import pytest

from elastic_devtools.search.aggregation_builder import AggregationBuilder
from elastic_devtools.search.aggregations import AGGREGATION_TYPES, AggregationKind
from elastic_devtools.search.document import QueryDocument
from elastic_devtools.search.errors import InvalidArgumentError


@pytest.fixture
def aggs():
    return AggregationBuilder()


class TestAggregationRegistry:
    """测试聚合注册表"""

    def test_every_kind_has_serializer(self):
        assert set(AGGREGATION_TYPES) == set(AggregationKind)


class TestMetricAggregations:
    """测试指标聚合"""

    @pytest.mark.parametrize(
        "method, kind",
        [
            ("average", "avg"),
            ("sum", "sum"),
            ("min", "min"),
            ("max", "max"),
            ("stats", "stats"),
            ("value_count", "value_count"),
        ],
    )
    def test_simple_metrics(self, aggs, method, kind):
        getattr(aggs, method)("metric", "price")
        assert aggs.compile() == {"aggs": {"metric": {kind: {"field": "price"}}}}

    def test_metric_with_script(self, aggs):
        aggs.sum("total", script="doc['price'].value * 2")
        assert aggs.compile()["aggs"]["total"] == {"sum": {"script": "doc['price'].value * 2"}}

    def test_metric_requires_field_or_script(self, aggs):
        with pytest.raises(InvalidArgumentError):
            aggs.average("avg_price")

    def test_cardinality(self, aggs):
        aggs.cardinality("unique_users", "user_id", precision=1000, rehash=False)
        assert aggs.compile()["aggs"]["unique_users"] == {
            "cardinality": {"field": "user_id", "precision_threshold": 1000, "rehash": False}
        }

    def test_percentiles_compression(self, aggs):
        aggs.percentile("load", "load_time", [50, 95, 99], compression=200)
        assert aggs.compile()["aggs"]["load"] == {
            "percentiles": {
                "field": "load_time",
                "percents": [50, 95, 99],
                "tdigest": {"compression": 200},
            }
        }

    def test_percentile_ranks_requires_values(self, aggs):
        with pytest.raises(InvalidArgumentError):
            aggs.percentile_ranks("ranks", "load_time", [])

    def test_geo_bounds(self, aggs):
        aggs.geo_bounds("viewport", "location")
        assert aggs.compile()["aggs"]["viewport"] == {
            "geo_bounds": {"field": "location", "wrap_longitude": True}
        }

    def test_empty_alias_rejected(self, aggs):
        with pytest.raises(InvalidArgumentError):
            aggs.max("", "price")


class TestBucketAggregations:
    """测试桶聚合"""

    def test_terms(self, aggs):
        aggs.terms("by_brand", "brand", size=10, order={"_count": "desc"}, min_doc_count=2)
        assert aggs.compile()["aggs"]["by_brand"] == {
            "terms": {
                "field": "brand",
                "size": 10,
                "order": {"_count": "desc"},
                "min_doc_count": 2,
            }
        }

    def test_missing_requires_field(self, aggs):
        with pytest.raises(InvalidArgumentError):
            aggs.missing("no_brand", "")

    def test_histogram(self, aggs):
        aggs.histogram(
            "prices",
            "price",
            50,
            min_doc_count=0,
            order_mode="_key",
            order_direction="desc",
            extended_bounds_min=0,
        )
        assert aggs.compile()["aggs"]["prices"] == {
            "histogram": {
                "field": "price",
                "interval": 50,
                "min_doc_count": 0,
                "extended_bounds": {"min": 0, "max": None},
                "order": {"_key": "desc"},
            }
        }

    @pytest.mark.parametrize("interval", [0, -10])
    def test_histogram_requires_positive_interval(self, aggs, interval):
        with pytest.raises(InvalidArgumentError):
            aggs.histogram("prices", "price", interval)

    def test_range_accepts_tuples_and_mappings(self, aggs):
        aggs.range("price_ranges", "price", [(None, 100), {"key": "mid", "from": 100, "to": 500}])
        assert aggs.compile()["aggs"]["price_ranges"] == {
            "range": {
                "field": "price",
                "ranges": [{"to": 100}, {"from": 100, "to": 500, "key": "mid"}],
                "keyed": False,
            }
        }

    def test_range_requires_ranges(self, aggs):
        with pytest.raises(InvalidArgumentError):
            aggs.range("price_ranges", "price", [])

    def test_range_requires_bound(self, aggs):
        with pytest.raises(InvalidArgumentError):
            aggs.range("price_ranges", "price", [{"key": "all"}])

    def test_date_range(self, aggs):
        aggs.date_range("periods", "created", "yyyy-MM", [{"to": "now-10M/M"}, {"from": "now-10M/M"}])
        assert aggs.compile()["aggs"]["periods"] == {
            "date_range": {
                "field": "created",
                "format": "yyyy-MM",
                "ranges": [{"to": "now-10M/M"}, {"from": "now-10M/M"}],
            }
        }

    def test_date_range_requires_format(self, aggs):
        with pytest.raises(InvalidArgumentError):
            aggs.date_range("periods", "created", "", [{"to": "now"}])

    def test_ipv4_range_masks(self, aggs):
        aggs.ipv4_range("subnets", "ip", ["10.0.0.0/25", {"from": "10.0.0.128"}])
        assert aggs.compile()["aggs"]["subnets"] == {
            "ip_range": {
                "field": "ip",
                "ranges": [{"mask": "10.0.0.0/25"}, {"from": "10.0.0.128"}],
            }
        }

    def test_geo_distance(self, aggs):
        aggs.geo_distance("rings", "location", "52.37, 4.89", [(None, 100), (100, 300)], unit="km")
        assert aggs.compile()["aggs"]["rings"] == {
            "geo_distance": {
                "field": "location",
                "origin": "52.37, 4.89",
                "unit": "km",
                "ranges": [{"to": 100}, {"from": 100, "to": 300}],
            }
        }

    def test_geo_hash_grid(self, aggs):
        aggs.geo_hash_grid("grid", "location", precision=3)
        assert aggs.compile()["aggs"]["grid"] == {
            "geohash_grid": {"field": "location", "precision": 3}
        }


class TestAliasHandling:
    """测试别名处理"""

    def test_same_alias_last_write_wins(self, aggs):
        """同名聚合后写覆盖"""
        aggs.average("price_metric", "price").max("price_metric", "price")
        assert aggs.compile() == {"aggs": {"price_metric": {"max": {"field": "price"}}}}

    def test_aliases_keep_insertion_order(self, aggs):
        aggs.sum("b", "x").sum("a", "y")
        assert list(aggs.compile()["aggs"]) == ["b", "a"]

    def test_extra_options_passed_through(self, aggs):
        aggs.terms("by_brand", "brand", shard_size=100)
        assert aggs.compile()["aggs"]["by_brand"]["terms"]["shard_size"] == 100

    def test_shared_document(self):
        document = QueryDocument()
        AggregationBuilder(document).stats("s", "price")
        assert "s" in document.aggregations
