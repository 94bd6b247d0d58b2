import unittest

from catalog_search.config.search.errors import BucketingError, ConfigurationError
from catalog_search.config.search.merge import (
    DEFAULT_OPTIONS,
    MergeRule,
    deep_merge,
    merge_options,
    merge_rule,
    merge_with_defaults,
)
from catalog_search.config.search.models import (
    CustomMapping,
    MultiMatchType,
    RuntimeOptions,
    SearchConfig,
    TotalItemsPolicy,
    identity_query,
)


def _variant_weight(variant, _language_code):
    return variant["weight"]


def _variant_count(_product, variants, _language_code):
    return len(variants)


class TestDefaults(unittest.TestCase):

    def test_default_values(self):
        options = merge_with_defaults()
        self.assertEqual(options.host, "http://localhost")
        self.assertEqual(options.port, 9200)
        self.assertEqual(options.connection_attempts, 10)
        self.assertEqual(options.connection_attempt_interval, 5000)
        self.assertEqual(options.index_prefix, "vendure-")
        self.assertEqual(options.index_settings, {})
        self.assertEqual(options.index_mapping_properties, {})
        self.assertEqual(options.batch_size, 2000)
        self.assertEqual(options.custom_product_mappings, {})
        self.assertEqual(options.custom_product_variant_mappings, {})
        self.assertIsNone(options.client_options)

        config = options.search_config
        self.assertEqual(config.facet_value_max_size, 50)
        self.assertEqual(config.collection_max_size, 50)
        self.assertEqual(config.total_items_max_size, TotalItemsPolicy.capped(10000))
        self.assertEqual(config.multi_match_type, MultiMatchType.BEST_FIELDS)
        self.assertEqual(config.price_range_bucket_interval, 1000)
        self.assertIs(config.map_query, identity_query)
        self.assertEqual(config.script_fields, {})
        boosts = config.boost_fields
        self.assertEqual(
            (boosts.product_name, boosts.product_variant_name, boosts.description, boosts.sku),
            (1, 1, 1, 1),
        )

    def test_every_field_defined(self):
        options = merge_with_defaults({"port": 9300})
        for name in RuntimeOptions.model_fields:
            if name == "client_options":
                continue
            self.assertIsNotNone(getattr(options, name), name)
        for name in SearchConfig.model_fields:
            self.assertIsNotNone(getattr(options.search_config, name), name)


class TestMergeWithDefaults(unittest.TestCase):

    def test_nested_override_keeps_siblings(self):
        options = merge_with_defaults({"search_config": {"facet_value_max_size": 5}})
        self.assertEqual(options.search_config.facet_value_max_size, 5)
        self.assertEqual(options.search_config.collection_max_size, 50)
        self.assertEqual(options.search_config.price_range_bucket_interval, 1000)

    def test_boost_fields_merge_per_field(self):
        options = merge_with_defaults({"search_config": {"boost_fields": {"product_name": 3}}})
        boosts = options.search_config.boost_fields
        self.assertEqual(boosts.product_name, 3)
        self.assertEqual(boosts.sku, 1)

    def test_absent_fields_equal_defaults(self):
        options = merge_with_defaults({"index_prefix": "shop-", "batch_size": 500})
        self.assertEqual(options.index_prefix, "shop-")
        self.assertEqual(options.batch_size, 500)
        self.assertEqual(options.search_config, DEFAULT_OPTIONS.search_config)
        self.assertEqual(options.host, DEFAULT_OPTIONS.host)

    def test_idempotent(self):
        user = {
            "port": 9201,
            "index_settings": {"analysis": {"analyzer": {"custom": {"tokenizer": "standard"}}}},
            "search_config": {"total_items_max_size": True, "boost_fields": {"sku": 0.5}},
            "custom_product_variant_mappings": {
                "weight": {"graphql_type": "Float", "value_fn": _variant_weight},
            },
        }
        once = merge_with_defaults(user)
        twice = merge_with_defaults(once)
        self.assertEqual(twice, once)

    def test_map_query_replaced_atomically(self):
        def add_flag(query, *_args):
            return {**query, "flag": True}

        options = merge_with_defaults({"search_config": {"map_query": add_flag}})
        self.assertIs(options.search_config.map_query, add_flag)

    def test_total_items_raw_forms(self):
        exact = merge_with_defaults({"search_config": {"total_items_max_size": True}})
        suppressed = merge_with_defaults({"search_config": {"total_items_max_size": False}})
        capped = merge_with_defaults({"search_config": {"total_items_max_size": 25}})
        self.assertEqual(exact.search_config.total_items_max_size, TotalItemsPolicy.exact())
        self.assertEqual(suppressed.search_config.total_items_max_size, TotalItemsPolicy.suppressed())
        self.assertEqual(capped.search_config.total_items_max_size, TotalItemsPolicy.capped(25))

    def test_index_settings_deep_merge(self):
        base = merge_with_defaults({"index_settings": {"analysis": {"filter": {"stem": {"type": "stemmer"}}}}})
        merged = merge_options(base, {"index_settings": {"analysis": {"analyzer": {"a": {"tokenizer": "standard"}}}}})
        self.assertEqual(
            merged.index_settings,
            {
                "analysis": {
                    "filter": {"stem": {"type": "stemmer"}},
                    "analyzer": {"a": {"tokenizer": "standard"}},
                }
            },
        )
        # base untouched
        self.assertNotIn("analyzer", base.index_settings["analysis"])

    def test_registry_entries_replaced_atomically(self):
        base = merge_with_defaults(
            {"custom_product_mappings": {"variantCount": {"graphql_type": "Int!", "value_fn": _variant_count}}}
        )
        merged = merge_options(
            base,
            {"custom_product_mappings": {"variantCount": {"graphql_type": "Int", "value_fn": len}}},
        )
        entry = merged.custom_product_mappings["variantCount"]
        self.assertEqual(entry.graphql_type, "Int")
        self.assertIs(entry.value_fn, len)

    def test_registry_entries_accumulate(self):
        base = merge_with_defaults(
            {"custom_product_mappings": {"variantCount": {"graphql_type": "Int!", "value_fn": _variant_count}}}
        )
        merged = merge_options(
            base,
            {"custom_product_mappings": {"rating": CustomMapping(graphql_type="Float", value_fn=len)}},
        )
        self.assertEqual(sorted(merged.custom_product_mappings), ["rating", "variantCount"])

    def test_client_options_passthrough(self):
        pool = object()
        client_options = {"hosts": ["https://search:9200"], "connection_pool": pool}
        options = merge_with_defaults({"client_options": client_options, "port": 9999})
        self.assertIs(options.client_options, client_options)
        self.assertIs(options.client_options["connection_pool"], pool)

    def test_client_options_kept_from_base_when_absent(self):
        base = merge_with_defaults({"client_options": {"timeout": 3}})
        merged = merge_options(base, {"port": 9201})
        self.assertEqual(merged.client_options, {"timeout": 3})

    def test_inputs_not_mutated(self):
        user = {"search_config": {"boost_fields": {"description": 2}}}
        merge_with_defaults(user)
        self.assertEqual(user, {"search_config": {"boost_fields": {"description": 2}}})
        self.assertEqual(DEFAULT_OPTIONS.search_config.boost_fields.description, 1)

    def test_merged_containers_are_read_only(self):
        options = merge_with_defaults({"index_settings": {"analysis": {"filter": {"stem": {"type": "stemmer"}}}}})
        with self.assertRaises(TypeError):
            options.search_config.script_fields["distance"] = "x"
        with self.assertRaises(TypeError):
            options.custom_product_variant_mappings["price"] = CustomMapping(graphql_type="Int", value_fn=len)
        with self.assertRaises(TypeError):
            options.index_settings["analysis"]["filter"]["leak"] = 1
        self.assertEqual(DEFAULT_OPTIONS.search_config.script_fields, {})
        self.assertEqual(merge_with_defaults().search_config.script_fields, {})
        self.assertEqual(merge_with_defaults().custom_product_variant_mappings, {})

    def test_derived_options_do_not_share_index_settings(self):
        base = merge_with_defaults({"index_settings": {"analysis": {"filter": {"stem": {"type": "stemmer"}}}}})
        derived = merge_options(base, {"port": 9300})
        plain = deep_merge(derived.index_settings, {})
        plain["analysis"]["filter"]["leak"] = 1
        self.assertEqual(base.index_settings, {"analysis": {"filter": {"stem": {"type": "stemmer"}}}})
        self.assertEqual(derived.index_settings, {"analysis": {"filter": {"stem": {"type": "stemmer"}}}})

    def test_model_override_counts_only_set_fields(self):
        options = merge_with_defaults({"search_config": SearchConfig(collection_max_size=7)})
        self.assertEqual(options.search_config.collection_max_size, 7)
        self.assertEqual(options.search_config.facet_value_max_size, 50)


class TestMergeErrors(unittest.TestCase):

    def test_unknown_key_rejected(self):
        with self.assertRaises(ConfigurationError) as ctx:
            merge_with_defaults({"search_config": {"facet_value_max": 5}})
        self.assertEqual(ctx.exception.paths, ["search_config.facet_value_max"])

    def test_unknown_top_level_key_rejected(self):
        with self.assertRaises(ConfigurationError):
            merge_with_defaults({"hostname": "x"})

    def test_non_positive_bucket_interval(self):
        for value in (0, -100):
            with self.assertRaises(BucketingError):
                merge_with_defaults({"search_config": {"price_range_bucket_interval": value}})

    def test_non_positive_caps(self):
        with self.assertRaises(ConfigurationError) as ctx:
            merge_with_defaults({"search_config": {"facet_value_max_size": 0}})
        self.assertNotIsInstance(ctx.exception, BucketingError)
        with self.assertRaises(ConfigurationError):
            merge_with_defaults({"search_config": {"total_items_max_size": 0}})

    def test_invalid_multi_match_type(self):
        with self.assertRaises(ConfigurationError):
            merge_with_defaults({"search_config": {"multi_match_type": "fuzzy_fields"}})

    def test_custom_mapping_collides_with_built_in_field(self):
        with self.assertRaises(ConfigurationError):
            merge_with_defaults(
                {"custom_product_variant_mappings": {"price": {"graphql_type": "Int", "value_fn": len}}}
            )

    def test_script_field_collides_with_built_in_field(self):
        with self.assertRaises(ConfigurationError):
            merge_with_defaults(
                {
                    "search_config": {
                        "script_fields": {"sku": {"graphql_type": "String", "val_fn": lambda _i: {"script": "1"}}}
                    }
                }
            )

    def test_invalid_graphql_type(self):
        with self.assertRaises(ConfigurationError):
            merge_with_defaults(
                {"custom_product_mappings": {"rating": {"graphql_type": "Number", "value_fn": len}}}
            )


class TestMergeRules(unittest.TestCase):

    def test_rules_from_field_types(self):
        fields = RuntimeOptions.model_fields
        self.assertIs(merge_rule(fields["search_config"]), MergeRule.NESTED)
        self.assertIs(merge_rule(fields["custom_product_mappings"]), MergeRule.ENTRIES)
        self.assertIs(merge_rule(fields["index_settings"]), MergeRule.DEEP)
        self.assertIs(merge_rule(fields["host"]), MergeRule.REPLACE)
        search_fields = SearchConfig.model_fields
        self.assertIs(merge_rule(search_fields["boost_fields"]), MergeRule.NESTED)
        self.assertIs(merge_rule(search_fields["total_items_max_size"]), MergeRule.REPLACE)
        self.assertIs(merge_rule(search_fields["map_query"]), MergeRule.REPLACE)
        self.assertIs(merge_rule(search_fields["script_fields"]), MergeRule.ENTRIES)

    def test_deep_merge(self):
        base = {"a": {"b": 1, "c": [1]}, "d": 1}
        result = deep_merge(base, {"a": {"c": [2]}, "e": 2})
        self.assertEqual(result, {"a": {"b": 1, "c": [2]}, "d": 1, "e": 2})
        self.assertEqual(base, {"a": {"b": 1, "c": [1]}, "d": 1})


if __name__ == "__main__":
    unittest.main()
