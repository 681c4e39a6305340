"""Full ABIs of the Celo core contracts, one ``<ContractName>.json`` per registry name."""
