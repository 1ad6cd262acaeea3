# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Installation gates.

Four ordered checks (credential, availability, integrity, compatibility) that
an install attempt must pass before it is declared successful. The mode
module decides once whether the gates run at all; the sequencer runs them;
the report module turns the outcome into text.
"""
