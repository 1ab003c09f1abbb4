"""GraphQL documents used by the GitHub client."""

from __future__ import annotations

NOTIFICATIONS_QUERY = """
query($login: String!) {
  viewer {
    login
    organizations(first: 20) {
      nodes {
        teams(first: 50, userLogins: [$login]) {
          nodes {
            slug
          }
        }
      }
    }
    notificationThreads(first: 100, filterBy: {statuses: [READ, UNREAD]}) {
      nodes {
        id
        isUnread
        isDone
        reason
        lastUpdatedAt
        optionalSubject {
          __typename
          ... on PullRequest {
            id
            number
            title
            url
            headRefName
            isDraft
            merged
            closed
            createdAt
            author { login }
            repository { nameWithOwner }
            reviewRequests(first: 20) {
              nodes {
                requestedReviewer {
                  ... on User { login }
                  ... on Team { slug }
                }
              }
            }
            statusCheckRollup { state }
            latestReviews(first: 20) {
              nodes {
                author { login }
                state
                onBehalfOf(first: 5) {
                  nodes { slug }
                }
              }
            }
            reviewThreads(last: 10) {
              nodes {
                comments(last: 5) {
                  nodes {
                    author { login }
                    createdAt
                    replyTo {
                      author { login }
                    }
                  }
                }
              }
            }
          }
        }
      }
    }
  }
}
"""

VIEWER_LOGIN_QUERY = "query { viewer { login } }"

# Mutation field names for the notification batch mutations
NOTIFICATION_MUTATIONS = {
    "mark_read": "markNotificationsAsRead",
    "mark_unread": "markNotificationsAsUnread",
    "mark_done": "markNotificationsAsDone",
    "unsubscribe": "unsubscribeFromNotifications",
}


def notification_mutation(field: str) -> str:
    """Build a batch mutation taking the ids as the ``$ids`` variable."""
    return (
        "mutation($ids: [ID!]!) {\n"
        f"  {field}(input: {{ids: $ids}}) {{ success }}\n"
        "}"
    )


def approve_mutation(count: int) -> str:
    """One document approving ``count`` pull requests ($pr0, $pr1, ...)."""
    params = ", ".join(f"$pr{i}: ID!" for i in range(count))
    fields = "\n".join(
        f"  approve{i}: addPullRequestReview(input: {{pullRequestId: $pr{i}, event: APPROVE}}) "
        "{ clientMutationId }"
        for i in range(count)
    )
    return f"mutation({params}) {{\n{fields}\n}}"
