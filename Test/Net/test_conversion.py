import unittest

import networkx as nx

from petriflow.Net.conversion import bipartite_to_net, net_to_bipartite
from petriflow.Net.core import Place, Transition, build


class TestBipartiteConversion(unittest.TestCase):
    def setUp(self) -> None:
        self.net = build(
            places=[Place("A", 2.0), Place("B"), Place("E", 1.0)],
            transitions=[Transition("t", rate=0.5)],
            arcs=[("A", "t", 2), ("E", "t"), ("t", "B"), ("t", "E")],
        )

    def test_node_attributes(self) -> None:
        G = net_to_bipartite(self.net)
        self.assertEqual(G.number_of_nodes(), 4)
        self.assertEqual(G.nodes["P:A"]["kind"], "place")
        self.assertEqual(G.nodes["P:A"]["bipartite"], 0)
        self.assertEqual(G.nodes["P:A"]["initial"], 2.0)
        self.assertEqual(G.nodes["T:t"]["kind"], "transition")
        self.assertEqual(G.nodes["T:t"]["bipartite"], 1)
        self.assertEqual(G.nodes["T:t"]["rate"], 0.5)
        self.assertTrue(nx.is_bipartite(G.to_undirected()))

    def test_edge_attributes(self) -> None:
        G = net_to_bipartite(self.net)
        self.assertEqual(G.edges["P:A", "T:t"], {"role": "reactant", "stoich": 2, "read": False})
        self.assertEqual(G.edges["T:t", "P:B"]["role"], "product")
        self.assertTrue(G.edges["P:E", "T:t"]["read"])
        self.assertTrue(G.edges["T:t", "P:E"]["read"])

    def test_custom_prefixes(self) -> None:
        G = net_to_bipartite(self.net, place_prefix="", transition_prefix="r_")
        self.assertIn("A", G)
        self.assertIn("r_t", G)

    def test_roundtrip(self) -> None:
        back = bipartite_to_net(net_to_bipartite(self.net))
        self.assertEqual(set(back.place_ids), set(self.net.place_ids))
        self.assertEqual(back.initial_levels(), self.net.initial_levels())
        self.assertEqual(back.declared_rates(), {"t": 0.5})
        self.assertEqual(
            {(a.source, a.target, a.weight) for a in back.arcs},
            {(a.source, a.target, a.weight) for a in self.net.arcs},
        )
        self.assertEqual(back.read_arcs("t"), ((back.place_index("E"), 1),))

    def test_bipartite_fallback_and_unclassified(self) -> None:
        G = nx.DiGraph()
        G.add_node("x", bipartite=0)
        G.add_node("r", bipartite=1)
        G.add_edge("x", "r", stoich=1)
        net = bipartite_to_net(G)
        self.assertEqual(net.place_ids, ("x",))

        G.add_node("?")
        with self.assertRaises(ValueError):
            bipartite_to_net(G)


if __name__ == "__main__":
    unittest.main()
